"""
Reporting Module.

Responsible for human-readable tuning summaries and the result artifacts
(result table, best configuration, diagnostics) written for each run.
"""

from .reporting_engine import ReportingEngine, format_result, format_summary

__all__ = ['ReportingEngine', 'format_result', 'format_summary']
