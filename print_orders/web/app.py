"""FastAPI-based web interface for the print order engine."""

from __future__ import annotations

import logging
from datetime import date
from pathlib import Path
from typing import Dict, List, Optional
from urllib.parse import urlencode

from fastapi import FastAPI, Form, Header, Request
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse, RedirectResponse
from fastapi.templating import Jinja2Templates
from pydantic import BaseModel, Field

from ..config import Settings, load_settings
from ..domain import (
    FilamentType,
    FulfillmentStatus,
    IncompleteOrder,
    InvalidTransition,
    Order,
    OrderError,
)
from ..repository import DuplicateRecordError, RecordNotFoundError
from ..services import AuthenticationRequired, OrderListing, OrderService
from ..storage import OrderDatabase

logger = logging.getLogger(__name__)

TEMPLATES_DIR = Path(__file__).resolve().parent / "templates"
templates = Jinja2Templates(directory=str(TEMPLATES_DIR))


# ----------------------------------------------------------------------
# Request bodies
# ----------------------------------------------------------------------
class FilamentIn(BaseModel):
    title: str
    brand: str
    price_per_kilo: float = Field(ge=0)
    colors: List[str] = []
    types: List[FilamentType] = [FilamentType.NORMAL]
    href: str = ""
    num_spools_owned: int = 0


class ProductPartIn(BaseModel):
    label: str
    required_mass: float = Field(ge=0)


class ProductIn(BaseModel):
    title: str
    parts: List[ProductPartIn] = []
    price: Optional[float] = None
    price_variants: Dict[str, float] = {}
    print_time_hours: float = 0.0


class OrderIn(BaseModel):
    title: str
    due_date: Optional[date] = None


class OrderDetailsIn(BaseModel):
    title: Optional[str] = None
    due_date: Optional[date] = None
    clear_due_date: bool = False


class PieceIn(BaseModel):
    product_id: str
    quantity: int = 1
    variant: Optional[str] = None


class QuantityIn(BaseModel):
    quantity: int


class PriceIn(BaseModel):
    unit_price: Optional[float] = None


class MaterialIn(BaseModel):
    material_id: Optional[str] = None


class PrintedCountIn(BaseModel):
    count: int


def order_payload(order: Order) -> dict:
    payload = jsonable_encoder(order)
    payload["printed_counts_by_index"] = order.printed_counts_by_index()
    return payload


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    settings = settings or load_settings()
    database = OrderDatabase(settings.database_path)
    service = OrderService(
        filament_repo=database.filaments,
        product_repo=database.products,
        order_repo=database.orders,
        user_repo=database.users,
        fulfillment_options=settings.fulfillment_options,
    )

    app = FastAPI(title="Print Orders")
    app.state.order_service = service
    app.state.database = database

    @app.on_event("shutdown")
    async def shutdown_event() -> None:
        database.close()

    # ------------------------------------------------------------------
    # Error mapping
    # ------------------------------------------------------------------
    @app.exception_handler(RecordNotFoundError)
    async def not_found_handler(request: Request, exc: RecordNotFoundError):
        return JSONResponse({"detail": str(exc)}, status_code=404)

    @app.exception_handler(DuplicateRecordError)
    async def duplicate_handler(request: Request, exc: DuplicateRecordError):
        return JSONResponse({"detail": str(exc)}, status_code=409)

    @app.exception_handler(InvalidTransition)
    async def transition_handler(request: Request, exc: InvalidTransition):
        return JSONResponse({"detail": str(exc)}, status_code=409)

    @app.exception_handler(IncompleteOrder)
    async def incomplete_handler(request: Request, exc: IncompleteOrder):
        return JSONResponse(
            {"detail": str(exc), "problems": exc.problems}, status_code=422
        )

    @app.exception_handler(OrderError)
    async def order_error_handler(request: Request, exc: OrderError):
        return JSONResponse({"detail": str(exc)}, status_code=422)

    @app.exception_handler(AuthenticationRequired)
    async def authentication_handler(request: Request, exc: AuthenticationRequired):
        return JSONResponse({"detail": str(exc)}, status_code=401)

    # ------------------------------------------------------------------
    # HTML overview
    # ------------------------------------------------------------------
    @app.get("/")
    async def orders_overview(request: Request):
        service: OrderService = request.app.state.order_service
        query = request.query_params
        owner = query.get("owner", "")
        show_done = query.get("show_done") == "1"
        sort_key = query.get("sort", "due_date")
        if sort_key not in {"title", "due_date", "status", "revenue", "profit"}:
            sort_key = "due_date"
        orders = (
            service.list_orders(
                owner,
                OrderListing(
                    include_done=show_done,
                    sort_key=sort_key,
                    descending=query.get("dir") == "desc",
                ),
            )
            if owner
            else []
        )
        filament_titles = {filament.id: filament.title for filament in service.filaments}
        return templates.TemplateResponse(
            request,
            "orders.html",
            {
                "owner": owner,
                "orders": orders,
                "show_done": show_done,
                "sort_key": sort_key,
                "filament_titles": filament_titles,
                "statistics": service.order_statistics(owner) if owner else None,
                "statuses": list(FulfillmentStatus),
            },
        )

    def _back_to_overview(owner: str) -> RedirectResponse:
        redirect = "/"
        if owner:
            redirect += "?" + urlencode({"owner": owner})
        return RedirectResponse(redirect, status_code=303)

    @app.post("/orders/{order_id}/printed")
    async def mark_printed_form(order_id: str, request: Request, owner: str = Form("")):
        service: OrderService = request.app.state.order_service
        service.mark_printed(order_id)
        return _back_to_overview(owner)

    @app.post("/orders/{order_id}/done")
    async def mark_done_form(order_id: str, request: Request, owner: str = Form("")):
        service: OrderService = request.app.state.order_service
        service.mark_done(order_id)
        return _back_to_overview(owner)

    @app.post("/orders/{order_id}/restore")
    async def restore_form(order_id: str, request: Request, owner: str = Form("")):
        service: OrderService = request.app.state.order_service
        try:
            service.restore_order(order_id)
        except InvalidTransition as exc:
            logger.warning("Restore rejected: %s", exc)
        return _back_to_overview(owner)

    @app.post("/orders/{order_id}/delete")
    async def delete_form(order_id: str, request: Request, owner: str = Form("")):
        service: OrderService = request.app.state.order_service
        service.hide_order(order_id)
        return _back_to_overview(owner)

    @app.post("/orders/{order_id}/pieces/{piece_index}/count")
    async def printed_count_form(
        order_id: str,
        piece_index: int,
        request: Request,
        count: int = Form(...),
        owner: str = Form(""),
    ):
        service: OrderService = request.app.state.order_service
        service.set_printed_count(order_id, piece_index, count)
        return _back_to_overview(owner)

    # ------------------------------------------------------------------
    # JSON API: catalogs
    # ------------------------------------------------------------------
    @app.get("/api/filaments")
    async def list_filaments(request: Request):
        service: OrderService = request.app.state.order_service
        return [filament for filament in service.filaments if not filament.hidden]

    @app.post("/api/filaments", status_code=201)
    async def create_filament(
        body: FilamentIn,
        request: Request,
        x_user_id: Optional[str] = Header(None),
    ):
        service: OrderService = request.app.state.order_service
        return service.register_filament(
            body.title,
            body.brand,
            price_per_kilo=body.price_per_kilo,
            owner_id=x_user_id,
            colors=body.colors,
            types=body.types,
            href=body.href,
            num_spools_owned=body.num_spools_owned,
        )

    @app.get("/api/products")
    async def list_products(request: Request):
        service: OrderService = request.app.state.order_service
        return [product for product in service.products if not product.hidden]

    @app.post("/api/products", status_code=201)
    async def create_product(
        body: ProductIn,
        request: Request,
        x_user_id: Optional[str] = Header(None),
    ):
        service: OrderService = request.app.state.order_service
        return service.register_product(
            body.title,
            [(part.label, part.required_mass) for part in body.parts],
            price=body.price,
            price_variants=body.price_variants,
            print_time_hours=body.print_time_hours,
            owner_id=x_user_id,
        )

    # ------------------------------------------------------------------
    # JSON API: orders
    # ------------------------------------------------------------------
    @app.post("/api/orders", status_code=201)
    async def create_order(
        body: OrderIn,
        request: Request,
        x_user_id: Optional[str] = Header(None),
    ):
        service: OrderService = request.app.state.order_service
        order = service.create_order(x_user_id, body.title, due_date=body.due_date)
        return order_payload(order)

    @app.get("/api/orders")
    async def list_orders(
        request: Request,
        include_done: bool = False,
        include_hidden: bool = False,
        sort: str = "due_date",
        descending: bool = False,
        x_user_id: Optional[str] = Header(None),
    ):
        service: OrderService = request.app.state.order_service
        if not x_user_id:
            raise AuthenticationRequired("You must be signed in to list orders")
        try:
            orders = service.list_orders(
                x_user_id,
                OrderListing(
                    include_done=include_done,
                    include_hidden=include_hidden,
                    sort_key=sort,
                    descending=descending,
                ),
            )
        except ValueError as exc:
            return JSONResponse({"detail": str(exc)}, status_code=422)
        return [order_payload(order) for order in orders]

    @app.get("/api/orders/statistics")
    async def order_statistics(
        request: Request, x_user_id: Optional[str] = Header(None)
    ):
        service: OrderService = request.app.state.order_service
        if not x_user_id:
            raise AuthenticationRequired("You must be signed in to view statistics")
        return jsonable_encoder(service.order_statistics(x_user_id))

    @app.get("/api/orders/{order_id}")
    async def get_order(order_id: str, request: Request):
        service: OrderService = request.app.state.order_service
        return order_payload(service.get_order(order_id))

    @app.patch("/api/orders/{order_id}")
    async def update_order(order_id: str, body: OrderDetailsIn, request: Request):
        service: OrderService = request.app.state.order_service
        order = service.update_order_details(
            order_id,
            title=body.title,
            due_date=body.due_date,
            clear_due_date=body.clear_due_date,
        )
        return order_payload(order)

    @app.delete("/api/orders/{order_id}")
    async def hide_order(order_id: str, request: Request):
        service: OrderService = request.app.state.order_service
        return order_payload(service.hide_order(order_id))

    @app.post("/api/orders/{order_id}/pieces", status_code=201)
    async def add_piece(order_id: str, body: PieceIn, request: Request):
        service: OrderService = request.app.state.order_service
        order = service.add_piece(
            order_id, body.product_id, body.quantity, variant=body.variant
        )
        return order_payload(order)

    @app.post("/api/orders/{order_id}/pieces/{piece_index}/duplicate")
    async def duplicate_piece(order_id: str, piece_index: int, request: Request):
        service: OrderService = request.app.state.order_service
        return order_payload(service.duplicate_piece(order_id, piece_index))

    @app.delete("/api/orders/{order_id}/pieces/{piece_index}")
    async def remove_piece(order_id: str, piece_index: int, request: Request):
        service: OrderService = request.app.state.order_service
        return order_payload(service.remove_piece(order_id, piece_index))

    @app.put("/api/orders/{order_id}/pieces/{piece_index}/quantity")
    async def update_quantity(
        order_id: str, piece_index: int, body: QuantityIn, request: Request
    ):
        service: OrderService = request.app.state.order_service
        order = service.update_piece_quantity(order_id, piece_index, body.quantity)
        return order_payload(order)

    @app.put("/api/orders/{order_id}/pieces/{piece_index}/price")
    async def update_price(
        order_id: str, piece_index: int, body: PriceIn, request: Request
    ):
        service: OrderService = request.app.state.order_service
        order = service.set_piece_price(order_id, piece_index, body.unit_price)
        return order_payload(order)

    @app.put("/api/orders/{order_id}/pieces/{piece_index}/parts/{part_index}/material")
    async def set_material(
        order_id: str,
        piece_index: int,
        part_index: int,
        body: MaterialIn,
        request: Request,
    ):
        service: OrderService = request.app.state.order_service
        order = service.set_part_material(
            order_id, piece_index, part_index, body.material_id
        )
        return order_payload(order)

    @app.put("/api/orders/{order_id}/pieces/{piece_index}/printed")
    async def set_printed_count(
        order_id: str, piece_index: int, body: PrintedCountIn, request: Request
    ):
        service: OrderService = request.app.state.order_service
        order = service.set_printed_count(order_id, piece_index, body.count)
        return order_payload(order)

    @app.post("/api/orders/{order_id}/submit")
    async def submit_order(order_id: str, request: Request):
        service: OrderService = request.app.state.order_service
        return order_payload(service.submit_order(order_id))

    @app.post("/api/orders/{order_id}/mark-printed")
    async def mark_printed(order_id: str, request: Request):
        service: OrderService = request.app.state.order_service
        return order_payload(service.mark_printed(order_id))

    @app.post("/api/orders/{order_id}/mark-done")
    async def mark_done(order_id: str, request: Request):
        service: OrderService = request.app.state.order_service
        return order_payload(service.mark_done(order_id))

    @app.post("/api/orders/{order_id}/restore")
    async def restore_order(order_id: str, request: Request):
        service: OrderService = request.app.state.order_service
        return order_payload(service.restore_order(order_id))

    return app


__all__ = ["create_app", "order_payload"]
