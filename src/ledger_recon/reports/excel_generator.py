"""
Excel report generator for reconciliation results.
Creates multi-sheet workbooks with formatted output.
"""

from datetime import datetime
from pathlib import Path
from typing import Any, Optional, Sequence, assert_never
import logging

from openpyxl import Workbook
from openpyxl.styles import Border, Font, PatternFill, Side
from openpyxl.utils import get_column_letter
from openpyxl.worksheet.worksheet import Worksheet

from ..config import ReconConfig, SheetConfig
from ..models.analysis import ReconciliationAnalysis
from ..models.execution import STATUS_FAILED, ExecutionResult
from ..models.recommendation import (
    ActionableRecommendation,
    CreateTransactionRecommendation,
    ManualReviewRecommendation,
    ReviewDuplicateRecommendation,
    UpdateClearedRecommendation,
)
from ..utils.exceptions import ReportGenerationError
from ..utils.money import from_milli

logger = logging.getLogger(__name__)

# Style definitions
HEADER_FILL = PatternFill(start_color="4472C4", end_color="4472C4", fill_type="solid")
HEADER_FONT = Font(color="FFFFFF", bold=True)
MATCH_FILL = PatternFill(start_color="C6EFCE", end_color="C6EFCE", fill_type="solid")
SUGGESTION_FILL = PatternFill(start_color="FFEB9C", end_color="FFEB9C", fill_type="solid")
UNMATCHED_FILL = PatternFill(start_color="FFC7CE", end_color="FFC7CE", fill_type="solid")
THIN_BORDER = Border(
    left=Side(style="thin"),
    right=Side(style="thin"),
    top=Side(style="thin"),
    bottom=Side(style="thin"),
)

SEVERITY_FILLS = {
    "critical": UNMATCHED_FILL,
    "warning": SUGGESTION_FILL,
}


class ExcelReportGenerator:
    """Generates Excel reconciliation reports with multiple sheets."""

    def __init__(self, config: ReconConfig):
        """
        Initialize the report generator.

        Args:
            config: Application configuration
        """
        self.config = config
        self.sheet_config = config.output.sheets

    def generate_report(
        self,
        analysis: ReconciliationAnalysis,
        output_path: Path,
        execution: Optional[ExecutionResult] = None,
        account_name: str = "Account",
    ) -> Path:
        """
        Generate the complete reconciliation report.

        Args:
            analysis: Result of the analysis phase
            output_path: Path for output file
            execution: Result of the execution phase, if one ran
            account_name: Label for the report title

        Returns:
            Path to generated report

        Raises:
            ReportGenerationError: If the workbook cannot be saved
        """
        logger.info(f"Generating Excel report: {output_path}")

        wb = Workbook()

        # Remove default sheet
        if wb.active:
            wb.remove(wb.active)

        sheets = self.sheet_config
        if sheets.summary.enabled:
            self._create_summary_sheet(wb, sheets.summary, analysis, account_name)
        if sheets.auto_matches.enabled:
            self._create_auto_matches_sheet(wb, sheets.auto_matches, analysis)
        if sheets.suggested_matches.enabled:
            self._create_suggested_sheet(wb, sheets.suggested_matches, analysis)
        if sheets.unmatched_external.enabled:
            self._create_statement_only_sheet(wb, sheets.unmatched_external, analysis)
        if sheets.unmatched_internal.enabled:
            self._create_ledger_only_sheet(wb, sheets.unmatched_internal, analysis)
        if sheets.insights.enabled:
            self._create_insights_sheet(wb, sheets.insights, analysis)
        if sheets.recommendations.enabled and analysis.recommendations is not None:
            self._create_recommendations_sheet(wb, sheets.recommendations, analysis)
        if sheets.actions.enabled and execution is not None:
            self._create_actions_sheet(wb, sheets.actions, execution)

        if not wb.sheetnames:
            raise ReportGenerationError("All report sheets are disabled")

        try:
            output_path.parent.mkdir(parents=True, exist_ok=True)
            wb.save(output_path)
        except OSError as e:
            raise ReportGenerationError(f"Failed to save report {output_path}: {e}") from e

        logger.info(f"Report saved: {output_path}")
        return output_path

    def _create_summary_sheet(
        self,
        wb: Workbook,
        sheet: SheetConfig,
        analysis: ReconciliationAnalysis,
        account_name: str,
    ) -> None:
        """Create the summary sheet with key metrics."""
        ws = wb.create_sheet(sheet.name)
        summary = analysis.summary
        balances = analysis.balance_info

        ws["A1"] = f"{account_name} Reconciliation Summary"
        ws["A1"].font = Font(size=16, bold=True)
        ws.merge_cells("A1:D1")

        sections = [
            (
                "Statement",
                [
                    ("Statement Period:", summary.statement_date_range),
                    ("Generated At:", datetime.now().strftime("%Y-%m-%d %H:%M:%S")),
                    ("Config File:", self.config.config_file_path or "Default"),
                    ("Currency:", analysis.currency),
                ],
            ),
            (
                "Transaction Counts",
                [
                    ("Statement Transactions:", summary.external_transactions_count),
                    ("Ledger Transactions:", summary.internal_transactions_count),
                    ("Auto Matched:", summary.auto_matched),
                    ("Suggested Matches:", summary.suggested_matches),
                    ("Statement Only:", summary.unmatched_external),
                    ("Ledger Only:", summary.unmatched_internal),
                    ("Match Rate:", f"{summary.match_rate:.1f}%"),
                    ("Parse Errors:", len(analysis.parse_errors)),
                ],
            ),
            (
                "Balances",
                [
                    ("Ledger Cleared:", balances.current_cleared.value_display),
                    ("Ledger Uncleared:", balances.current_uncleared.value_display),
                    ("Ledger Total:", balances.current_total.value_display),
                    ("Statement Balance:", balances.target_statement.value_display),
                    ("Discrepancy:", balances.discrepancy.value_display),
                    ("Explanation:", summary.discrepancy_explanation),
                ],
            ),
        ]

        row = 3
        for title, items in sections:
            ws[f"A{row}"] = title
            ws[f"A{row}"].font = Font(bold=True)
            row += 1
            for label, value in items:
                ws[f"A{row}"] = label
                ws[f"B{row}"] = value
                row += 1
            row += 1

        ws.column_dimensions["A"].width = 30
        ws.column_dimensions["B"].width = 40

    def _create_auto_matches_sheet(
        self, wb: Workbook, sheet: SheetConfig, analysis: ReconciliationAnalysis
    ) -> None:
        """Create the auto-matched transactions sheet."""
        headers = [
            "Statement Date",
            "Statement Payee",
            "Statement Amount",
            "Ledger Date",
            "Ledger Payee",
            "Ledger Amount",
            "Ledger Cleared",
            "Score",
            "Match Reason",
            "Date Variance (Days)",
        ]
        rows = []
        for match in analysis.auto_matches:
            ext = match.external_transaction
            internal = match.internal_transaction
            rows.append(
                [
                    ext.date,
                    ext.payee,
                    float(ext.amount),
                    internal.date if internal else "",
                    (internal.payee_name or "") if internal else "",
                    float(from_milli(internal.amount)) if internal else "",
                    internal.cleared.value if internal else "",
                    match.confidence_score,
                    match.match_reason,
                    match.date_variance_days if match.date_variance_days else "",
                ]
            )
        self._write_table(wb.create_sheet(sheet.name), headers, rows, MATCH_FILL)

    def _create_suggested_sheet(
        self, wb: Workbook, sheet: SheetConfig, analysis: ReconciliationAnalysis
    ) -> None:
        """Create the suggested matches sheet, one row per candidate."""
        headers = [
            "Statement Date",
            "Statement Payee",
            "Statement Amount",
            "Tier",
            "Candidate Rank",
            "Ledger ID",
            "Ledger Date",
            "Ledger Payee",
            "Ledger Amount",
            "Score",
            "Explanation",
        ]
        rows = []
        for match in analysis.suggested_matches:
            ext = match.external_transaction
            lead = [ext.date, ext.payee, float(ext.amount), match.confidence.value]
            if not match.candidates:
                rows.append(lead + ["", "", "", "", "", match.confidence_score, match.match_reason])
                continue
            for rank, candidate in enumerate(match.candidates, start=1):
                internal = candidate.internal_transaction
                rows.append(
                    lead
                    + [
                        rank,
                        internal.id,
                        internal.date,
                        internal.payee_name or "",
                        float(from_milli(internal.amount)),
                        candidate.confidence,
                        candidate.explanation,
                    ]
                )
        self._write_table(wb.create_sheet(sheet.name), headers, rows, SUGGESTION_FILL)

    def _create_statement_only_sheet(
        self, wb: Workbook, sheet: SheetConfig, analysis: ReconciliationAnalysis
    ) -> None:
        """Create the statement-only transactions sheet."""
        headers = ["Date", "Payee", "Amount", "Memo", "Source Row", "ID"]
        rows = [
            [t.date, t.payee, float(t.amount), t.memo or "", t.source_row, t.id]
            for t in analysis.unmatched_external
        ]
        self._write_table(wb.create_sheet(sheet.name), headers, rows, UNMATCHED_FILL)

    def _create_ledger_only_sheet(
        self, wb: Workbook, sheet: SheetConfig, analysis: ReconciliationAnalysis
    ) -> None:
        """Create the ledger-only transactions sheet."""
        headers = ["Date", "Payee", "Amount", "Category", "Cleared", "Approved", "Memo", "ID"]
        rows = [
            [
                t.date,
                t.payee_name or "",
                float(from_milli(t.amount)),
                t.category_name or "",
                t.cleared.value,
                "Yes" if t.approved else "No",
                t.memo or "",
                t.id,
            ]
            for t in analysis.unmatched_internal
        ]
        self._write_table(wb.create_sheet(sheet.name), headers, rows, UNMATCHED_FILL)

    def _create_insights_sheet(
        self, wb: Workbook, sheet: SheetConfig, analysis: ReconciliationAnalysis
    ) -> None:
        """Create the insights sheet."""
        ws = wb.create_sheet(sheet.name)
        headers = ["ID", "Type", "Severity", "Title", "Description"]
        rows = [
            [i.id, i.kind.value, i.severity.value, i.title, i.description]
            for i in analysis.insights
        ]
        self._write_table(ws, headers, rows)

        for row_num, insight in enumerate(analysis.insights, start=2):
            fill = SEVERITY_FILLS.get(insight.severity.value)
            if fill:
                ws.cell(row=row_num, column=3).fill = fill

    def _create_recommendations_sheet(
        self, wb: Workbook, sheet: SheetConfig, analysis: ReconciliationAnalysis
    ) -> None:
        """Create the recommendations sheet."""
        headers = [
            "Priority",
            "Action",
            "Target",
            "Confidence",
            "Message",
            "Reason",
            "Impact",
            "Insight",
        ]
        rows = [
            [
                r.priority.value,
                r.kind,
                _recommendation_target(r),
                f"{r.confidence:.0%}",
                r.message,
                r.reason,
                r.estimated_impact.value_display,
                r.source_insight_id or "",
            ]
            for r in analysis.recommendations or ()
        ]
        self._write_table(wb.create_sheet(sheet.name), headers, rows)

    def _create_actions_sheet(
        self, wb: Workbook, sheet: SheetConfig, execution: ExecutionResult
    ) -> None:
        """Create the execution actions sheet."""
        ws = wb.create_sheet(sheet.name)
        headers = ["Type", "Status", "Transaction ID", "Reason", "Error"]
        rows = [
            [a.type, a.status, a.transaction_id or "", a.reason, a.error or ""]
            for a in execution.actions_taken
        ]
        self._write_table(ws, headers, rows)

        for row_num, action in enumerate(execution.actions_taken, start=2):
            if action.status == STATUS_FAILED:
                for col in range(1, len(headers) + 1):
                    ws.cell(row=row_num, column=col).fill = UNMATCHED_FILL

    def _write_table(
        self,
        ws: Worksheet,
        headers: list[str],
        rows: Sequence[Sequence[Any]],
        fill: Optional[PatternFill] = None,
    ) -> None:
        """Write a header row and data rows, then size the columns."""
        for col, header in enumerate(headers, start=1):
            cell = ws.cell(row=1, column=col, value=header)
            cell.fill = HEADER_FILL
            cell.font = HEADER_FONT
            cell.border = THIN_BORDER

        for row_num, row_data in enumerate(rows, start=2):
            for col, value in enumerate(row_data, start=1):
                cell = ws.cell(row=row_num, column=col, value=value)
                cell.border = THIN_BORDER
                if fill is not None:
                    cell.fill = fill

        self._auto_fit_columns(ws)

    def _auto_fit_columns(self, ws: Worksheet) -> None:
        """Auto-fit column widths based on content."""
        for column_cells in ws.columns:
            max_length = 0
            column = get_column_letter(column_cells[0].column)

            for cell in column_cells:
                if cell.value is not None:
                    max_length = max(max_length, len(str(cell.value)))

            ws.column_dimensions[column].width = min(max_length + 2, 50)


def _recommendation_target(rec: ActionableRecommendation) -> str:
    """Describe what a recommendation acts on."""
    if isinstance(rec, CreateTransactionRecommendation):
        params = rec.parameters
        return f"new: {params.date.isoformat()} {params.payee_name} {params.amount:,.2f}"
    if isinstance(rec, UpdateClearedRecommendation):
        return f"{rec.parameters.transaction_id} -> {rec.parameters.cleared.value}"
    if isinstance(rec, ReviewDuplicateRecommendation):
        return "candidates: " + ", ".join(rec.parameters.candidate_ids)
    if isinstance(rec, ManualReviewRecommendation):
        return rec.parameters.issue_type.value
    assert_never(rec)
