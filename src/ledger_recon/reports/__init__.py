"""Report generation."""

from .excel_generator import ExcelReportGenerator
from .text_report import ReportOptions, format_report

__all__ = ["ExcelReportGenerator", "ReportOptions", "format_report"]
