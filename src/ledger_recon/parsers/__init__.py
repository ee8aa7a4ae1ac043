"""Parsers for bank statement exports."""

from .statement_parser import ParsedStatement, StatementParser, parse_amount, parse_statement_text

__all__ = ["ParsedStatement", "StatementParser", "parse_amount", "parse_statement_text"]
