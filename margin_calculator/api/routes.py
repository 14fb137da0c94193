"""
API routes — thin HTTP layer over the Product Ledger.

Routes:
  GET    /health                       → API health check
  GET    /api/ledger                   → Rows, targets, client, undo availability
  POST   /api/ledger/rows              → Add a catalog item
  POST   /api/ledger/rows/manual       → Add a free-typed code
  PATCH  /api/ledger/rows/{code}       → Edit one pricing field
  DELETE /api/ledger/rows/{code}       → Remove a row
  DELETE /api/ledger/rows              → Clear the ledger
  PUT    /api/ledger/targets           → Set global margin / markup targets
  POST   /api/ledger/apply/margin      → Stamp the margin target on every costed row
  POST   /api/ledger/apply/markup      → Stamp the markup target on every costed row
  POST   /api/ledger/undo              → Revert the last global apply
  PUT    /api/ledger/client            → Set client header
  DELETE /api/ledger/client            → Clear client header
  GET    /api/ledger/export/xlsx       → Spreadsheet with live formulas
  GET    /api/ledger/export/csv        → Flat CSV
  GET    /api/ledger/audit             → Mutation audit trail
  WS     /api/ledger/ws                → Live ledger events
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Optional, Union

from fastapi import APIRouter, Depends, HTTPException, Request, Response, WebSocket, WebSocketDisconnect
from pydantic import BaseModel

from margin_calculator.api.websocket import LedgerFeed
from margin_calculator.config import get_settings
from margin_calculator.engine.ledger import ProductLedger
from margin_calculator.models.enums import PricingField
from margin_calculator.models.schemas import (
    CatalogItem,
    ClientInfo,
    GlobalApplyResult,
    ProductRow,
)
from margin_calculator.services.audit_service import AuditService
from margin_calculator.services.export_service import (
    ExportError,
    export_csv,
    export_filename,
    export_xlsx,
)
from margin_calculator.services.global_apply_service import GlobalApplyService

logger = logging.getLogger(__name__)

XLSX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"

# ── Routers ──────────────────────────────────────────────
health_router = APIRouter()
ledger_router = APIRouter()


# ── Dependencies (state lives on app.state) ──────────────

def get_ledger(request: Request) -> ProductLedger:
    return request.app.state.ledger


def get_global_apply(request: Request) -> GlobalApplyService:
    return request.app.state.global_apply


def get_audit(request: Request) -> AuditService:
    return request.app.state.audit


# ── Request / response schemas ───────────────────────────

class ManualRowRequest(BaseModel):
    code: str
    name: str = ""


class UpdateFieldRequest(BaseModel):
    field: PricingField
    value: Union[float, str, None] = None  # empty / unparsable clears the field


class TargetsRequest(BaseModel):
    margin_target: Optional[float] = None
    markup_target: Optional[float] = None


class ApplyRequest(BaseModel):
    target: Optional[float] = None  # falls back to the stored target


class AddRowResponse(BaseModel):
    added: bool
    row: ProductRow


class LedgerResponse(BaseModel):
    rows: list[ProductRow]
    margin_target: float
    markup_target: float
    client: ClientInfo
    can_undo: bool


class TargetsResponse(BaseModel):
    margin_target: float
    markup_target: float


def _ledger_response(ledger: ProductLedger, global_apply: GlobalApplyService) -> LedgerResponse:
    return LedgerResponse(
        rows=ledger.list_rows(),
        margin_target=global_apply.margin_target,
        markup_target=global_apply.markup_target,
        client=ledger.client,
        can_undo=global_apply.can_undo,
    )


# ── Health ───────────────────────────────────────────────

@health_router.get("/health")
async def health_check():
    settings = get_settings()
    return {
        "status": "ok",
        "app": settings.app_name,
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }


# ── Ledger ───────────────────────────────────────────────

@ledger_router.get("", response_model=LedgerResponse)
async def get_ledger_state(
    ledger: ProductLedger = Depends(get_ledger),
    global_apply: GlobalApplyService = Depends(get_global_apply),
):
    return _ledger_response(ledger, global_apply)


@ledger_router.post("/rows", response_model=AddRowResponse)
async def add_row(item: CatalogItem, ledger: ProductLedger = Depends(get_ledger)):
    added = ledger.add(item)
    return AddRowResponse(added=added, row=ledger.get(item.code))


@ledger_router.post("/rows/manual", response_model=AddRowResponse)
async def add_manual_row(body: ManualRowRequest, ledger: ProductLedger = Depends(get_ledger)):
    code = body.code.strip()
    if not code:
        raise HTTPException(status_code=400, detail="Product code must not be empty")
    added = ledger.add_manual(code, body.name.strip())
    return AddRowResponse(added=added, row=ledger.get(code))


@ledger_router.patch("/rows/{code}", response_model=ProductRow)
async def update_row_field(code: str, body: UpdateFieldRequest, ledger: ProductLedger = Depends(get_ledger)):
    row = ledger.update_field(code, body.field, body.value)
    if row is None:
        raise HTTPException(status_code=404, detail=f"Product {code} not found")
    return row


@ledger_router.delete("/rows/{code}")
async def remove_row(code: str, ledger: ProductLedger = Depends(get_ledger)):
    if not ledger.remove(code):
        raise HTTPException(status_code=404, detail=f"Product {code} not found")
    return {"code": code, "removed": True}


@ledger_router.delete("/rows")
async def clear_rows(ledger: ProductLedger = Depends(get_ledger)):
    count = len(ledger)
    ledger.clear()
    return {"cleared": count}


# ── Global apply ─────────────────────────────────────────

@ledger_router.put("/targets", response_model=TargetsResponse)
async def set_targets(body: TargetsRequest, global_apply: GlobalApplyService = Depends(get_global_apply)):
    if body.margin_target is not None:
        global_apply.set_margin_target(body.margin_target)
    if body.markup_target is not None:
        global_apply.set_markup_target(body.markup_target)
    return TargetsResponse(
        margin_target=global_apply.margin_target,
        markup_target=global_apply.markup_target,
    )


@ledger_router.post("/apply/margin", response_model=GlobalApplyResult)
async def apply_global_margin(
    body: Optional[ApplyRequest] = None,
    global_apply: GlobalApplyService = Depends(get_global_apply),
):
    return global_apply.apply_margin(body.target if body else None)


@ledger_router.post("/apply/markup", response_model=GlobalApplyResult)
async def apply_global_markup(
    body: Optional[ApplyRequest] = None,
    global_apply: GlobalApplyService = Depends(get_global_apply),
):
    return global_apply.apply_markup(body.target if body else None)


@ledger_router.post("/undo", response_model=LedgerResponse)
async def undo_global_apply(
    ledger: ProductLedger = Depends(get_ledger),
    global_apply: GlobalApplyService = Depends(get_global_apply),
):
    if not global_apply.undo():
        raise HTTPException(status_code=409, detail="Nothing to undo")
    return _ledger_response(ledger, global_apply)


# ── Client header ────────────────────────────────────────

@ledger_router.put("/client", response_model=ClientInfo)
async def set_client(client: ClientInfo, ledger: ProductLedger = Depends(get_ledger)):
    ledger.set_client(client)
    return ledger.client


@ledger_router.delete("/client", response_model=ClientInfo)
async def clear_client(ledger: ProductLedger = Depends(get_ledger)):
    ledger.clear_client()
    return ledger.client


# ── Export ───────────────────────────────────────────────

@ledger_router.get("/export/xlsx")
async def export_ledger_xlsx(ledger: ProductLedger = Depends(get_ledger)):
    try:
        content = export_xlsx(ledger.list_rows(), ledger.client)
    except ExportError as e:
        raise HTTPException(status_code=400, detail=str(e))
    filename = export_filename(ledger.client, "xlsx")
    return Response(
        content=content,
        media_type=XLSX_MEDIA_TYPE,
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@ledger_router.get("/export/csv")
async def export_ledger_csv(ledger: ProductLedger = Depends(get_ledger)):
    try:
        content = export_csv(ledger.list_rows(), ledger.client)
    except ExportError as e:
        raise HTTPException(status_code=400, detail=str(e))
    filename = export_filename(ledger.client, "csv")
    return Response(
        content=content.encode("utf-8-sig"),
        media_type="text/csv; charset=utf-8",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


# ── Audit ────────────────────────────────────────────────

@ledger_router.get("/audit")
async def get_audit_trail(code: Optional[str] = None, audit: AuditService = Depends(get_audit)) -> list[dict[str, Any]]:
    return audit.get_trail(code) if code else audit.get_all()


# ── WebSocket endpoint for live ledger updates ───────────

@ledger_router.websocket("/ws")
async def ws_ledger_events(websocket: WebSocket):
    """
    WebSocket endpoint — receives every ledger event as JSON, starting with
    the recent history.
    """
    feed: LedgerFeed = websocket.app.state.feed
    await feed.connect(websocket)
    try:
        while True:
            # Keep the connection alive; client can send pings
            await websocket.receive_text()
    except WebSocketDisconnect:
        feed.disconnect(websocket)
    except Exception:
        feed.disconnect(websocket)
