"""Report exporters."""

from sales_services.exporters.excel import export_audit_report

__all__ = ["export_audit_report"]
