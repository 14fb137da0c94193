"""Services — GlobalApplyService, AuditService, export helpers."""

from margin_calculator.services.audit_service import AuditService
from margin_calculator.services.export_service import ExportError, export_csv, export_xlsx
from margin_calculator.services.global_apply_service import GlobalApplyService

__all__ = ["AuditService", "ExportError", "GlobalApplyService", "export_csv", "export_xlsx"]
