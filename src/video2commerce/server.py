"""FastAPI dashboard: browser pages plus the JSON API they call."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from decimal import Decimal
from typing import Any, Dict, List, Optional
from urllib.parse import urlencode

from fastapi import Depends, FastAPI, Query, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import HTMLResponse, JSONResponse, RedirectResponse
from pydantic import BaseModel, Field

from .client import ProductStoreClient
from .config import Settings, get_settings
from .context import AppContext
from .controller import ReconciliationController
from .dashboard import (
    render_login_page,
    render_process_page,
    render_review_page,
    render_signup_page,
)
from .errors import (
    ApiStatusError,
    AuthenticationRequired,
    ConfirmationRequired,
    DashboardError,
    EmptySelectionError,
    InvalidCredentialsError,
    MissingParametersError,
    TransportError,
)
from .models import CollectionSummary, Decision, Product, StoreProfile
from .projection import (
    clip_embed_url,
    filter_by_tab,
    format_timestamp,
    review_bucket,
    youtube_video_id,
)
from .sessions import ReviewSessions

logger = logging.getLogger(__name__)

COLLECTION_TABS = ("all", "with-products", "empty")


class LoginRequest(BaseModel):
    username: str = Field(..., min_length=1)
    password: str = Field(..., min_length=1)


class SignupRequest(BaseModel):
    email: str = Field(..., min_length=1)
    password: str = Field(..., min_length=1)
    site_title: str = Field(..., min_length=1)
    site_url: str = Field(..., min_length=1)
    username: Optional[str] = None


class ProcessVideoRequest(BaseModel):
    youtube_url: str
    store_url: str
    auto_approve: bool = False


class SessionRequest(BaseModel):
    youtube_url: str = ""
    store_url: str = ""


class MarkRequest(SessionRequest):
    product_ids: List[str]
    decision: Decision


class BulkReviewRequest(MarkRequest):
    review_all: bool = False


class EditRequest(SessionRequest):
    product_id: str
    name: Optional[str] = None
    price: Optional[Decimal] = None
    description: Optional[str] = None


class DiscardRequest(SessionRequest):
    confirm: bool = False


class SelectStoreRequest(BaseModel):
    store_url: str = Field(..., min_length=1)


def _status_for(exc: DashboardError) -> int:
    if isinstance(
        exc, (MissingParametersError, EmptySelectionError, InvalidCredentialsError)
    ):
        return status.HTTP_400_BAD_REQUEST
    if isinstance(exc, ConfirmationRequired):
        return status.HTTP_409_CONFLICT
    if isinstance(exc, AuthenticationRequired):
        return status.HTTP_401_UNAUTHORIZED
    if isinstance(exc, (TransportError, ApiStatusError)):
        return status.HTTP_502_BAD_GATEWAY
    return status.HTTP_400_BAD_REQUEST


def _error_response(status_code: int, detail: Any, code: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"detail": detail, "code": code})


def _user_label(context: AppContext) -> str:
    user = context.user
    return str(
        user.get("display_name") or user.get("username") or user.get("email") or ""
    )


def _store_state(context: AppContext) -> Dict[str, Any]:
    current = context.current_store
    return {
        "current_store": current.model_dump() if current else None,
        "recent_stores": [s.model_dump() for s in context.recent_stores],
    }


def _product_view(
    product: Product, session: ReconciliationController, video_id: Optional[str]
) -> Dict[str, Any]:
    clip_video = youtube_video_id(product.video_clip_url) or video_id
    return {
        "id": product.id,
        "name": product.name,
        "price": float(product.price) if product.price is not None else None,
        "description": product.description,
        "status": product.status.value if product.status else None,
        "review_bucket": review_bucket(product.status),
        "confidence_score": product.confidence_score,
        "timestamp_start": product.timestamp_start,
        "timestamp_end": product.timestamp_end,
        "start_label": format_timestamp(product.timestamp_start),
        "end_label": format_timestamp(product.timestamp_end),
        "thumbnail_url": product.thumbnail_url,
        "clip_embed_url": (
            clip_embed_url(clip_video, product.timestamp_start, product.timestamp_end)
            if clip_video
            else None
        ),
        "staged": product.id in session.ledger,
    }


def _pending_state(session: ReconciliationController) -> Dict[str, Any]:
    return {
        "pending_changes": len(session.ledger),
        "pending_summary": session.ledger.summary(),
    }


def _filter_collections(
    collections: List[CollectionSummary], search: str, tab: str
) -> List[CollectionSummary]:
    if tab not in COLLECTION_TABS:
        raise ValueError(
            f"unknown tab {tab!r}; expected one of {', '.join(COLLECTION_TABS)}."
        )
    needle = search.strip().lower()
    if needle:
        collections = [c for c in collections if needle in c.name.lower()]
    if tab == "with-products":
        collections = [c for c in collections if c.total_products > 0]
    elif tab == "empty":
        collections = [c for c in collections if c.total_products == 0]
    return collections


def create_app(
    settings: Optional[Settings] = None,
    context: Optional[AppContext] = None,
    client: Optional[ProductStoreClient] = None,
) -> FastAPI:
    """Build the dashboard app; collaborators default to ones built from ``settings``."""
    settings = settings or get_settings()
    if context is None:
        context = AppContext.load(settings.resolved_state_path)
    if client is None:
        client = ProductStoreClient(
            settings.api_base_url, context.token, timeout=settings.request_timeout
        )
    elif client.token is None and context.token:
        client.token = context.token

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        yield
        client.close()

    app = FastAPI(title="Video2Commerce Review Dashboard", lifespan=lifespan)
    app.state.settings = settings
    app.state.context = context
    app.state.client = client
    app.state.sessions = ReviewSessions(client)

    @app.exception_handler(DashboardError)
    async def _dashboard_error(request: Request, exc: DashboardError) -> JSONResponse:
        if isinstance(exc, AuthenticationRequired) and context.is_authenticated:
            logger.info("Product API rejected the stored token; signing out")
            context.sign_out()
            client.token = None
        message = exc.message if isinstance(exc, ApiStatusError) else str(exc)
        return _error_response(_status_for(exc), message, exc.code)

    @app.exception_handler(RequestValidationError)
    async def _invalid_request(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        return _error_response(
            status.HTTP_400_BAD_REQUEST, jsonable_encoder(exc.errors()), "invalid_request"
        )

    @app.exception_handler(ValueError)
    async def _value_error(request: Request, exc: ValueError) -> JSONResponse:
        return _error_response(status.HTTP_400_BAD_REQUEST, str(exc), "invalid_request")

    def require_auth() -> AppContext:
        if not context.is_authenticated:
            raise AuthenticationRequired()
        return context

    def review_session(youtube_url: str, store_url: str) -> ReconciliationController:
        return app.state.sessions.get(youtube_url, store_url)

    # --- pages --------------------------------------------------------------

    @app.get("/", include_in_schema=False)
    def index() -> RedirectResponse:
        target = "/process" if context.is_authenticated else "/login"
        return RedirectResponse(target, status_code=status.HTTP_303_SEE_OTHER)

    @app.get("/login", response_class=HTMLResponse, include_in_schema=False)
    def login_page(notice: Optional[str] = None) -> HTMLResponse:
        return HTMLResponse(render_login_page(notice=notice))

    @app.get("/signup", response_class=HTMLResponse, include_in_schema=False)
    def signup_page() -> HTMLResponse:
        return HTMLResponse(render_signup_page())

    @app.get("/process", response_class=HTMLResponse, include_in_schema=False)
    def process_page(notice: Optional[str] = None):
        if not context.is_authenticated:
            return RedirectResponse("/login", status_code=status.HTTP_303_SEE_OTHER)
        state = _store_state(context)
        return HTMLResponse(
            render_process_page(
                current_store=state["current_store"],
                recent_stores=state["recent_stores"],
                user_label=_user_label(context),
                notice=notice,
            )
        )

    @app.get("/review", response_class=HTMLResponse, include_in_schema=False)
    def review_page(youtube_url: str = "", store_url: str = ""):
        if not context.is_authenticated:
            return RedirectResponse("/login", status_code=status.HTTP_303_SEE_OTHER)
        if not youtube_url.strip() or not store_url.strip():
            return RedirectResponse(
                "/process?notice=missing-parameters",
                status_code=status.HTTP_303_SEE_OTHER,
            )
        video_id = youtube_video_id(youtube_url)
        return HTMLResponse(
            render_review_page(
                youtube_url=youtube_url.strip(),
                store_url=store_url.strip(),
                video_embed_url=clip_embed_url(video_id) if video_id else None,
                user_label=_user_label(context),
            )
        )

    # --- JSON API -----------------------------------------------------------

    @app.get("/health")
    def health() -> Dict[str, str]:
        return {"status": "ok"}

    @app.post("/api/auth/login")
    def login(payload: LoginRequest) -> Dict[str, Any]:
        try:
            result = client.login(payload.username, payload.password)
        except AuthenticationRequired as exc:
            raise InvalidCredentialsError(exc.message) from exc
        context.sign_in(result.token, result.user)
        logger.info("Signed in as %s", payload.username)
        return {"status": "signed_in", "user": result.user}

    @app.post("/api/auth/signup")
    def signup(payload: SignupRequest) -> Dict[str, Any]:
        try:
            result = client.signup(
                email=payload.email.strip(),
                password=payload.password,
                site_title=payload.site_title.strip(),
                site_url=payload.site_url.strip(),
                username=(payload.username or "").strip() or None,
            )
        except AuthenticationRequired as exc:
            raise InvalidCredentialsError(exc.message) from exc
        context.sign_in(result.token, result.user)
        context.select_store(
            StoreProfile(
                store_url=payload.site_url.strip(),
                store_title=payload.site_title.strip(),
                owner_email=payload.email.strip(),
            )
        )
        logger.info("Created account for %s", payload.email)
        return {"status": "signed_in", "user": result.user}

    @app.post("/api/auth/logout")
    def logout() -> Dict[str, str]:
        client.logout()
        context.sign_out()
        app.state.sessions.clear()
        return {"status": "signed_out"}

    @app.post("/api/process-video", dependencies=[Depends(require_auth)])
    def process_video(payload: ProcessVideoRequest) -> Dict[str, Any]:
        session = review_session(payload.youtube_url, payload.store_url)
        result = client.process_video(
            session.youtube_url, session.store_url, auto_approve=payload.auto_approve
        )
        session.invalidate()
        query = urlencode(
            {"youtube_url": session.youtube_url, "store_url": session.store_url}
        )
        return {"review_url": f"/review?{query}", "result": result.model_dump()}

    @app.get("/api/review/products", dependencies=[Depends(require_auth)])
    def review_products(
        youtube_url: str = "", store_url: str = "", tab: str = "all"
    ) -> Dict[str, Any]:
        session = review_session(youtube_url, store_url)
        views = session.view()
        counts = session.counts()
        video_id = youtube_video_id(session.youtube_url)
        return {
            "tab": tab,
            "products": [
                _product_view(p, session, video_id) for p in filter_by_tab(views, tab)
            ],
            "counts": counts.model_dump(),
            "total": counts.total,
            "progress": counts.progress,
            **_pending_state(session),
        }

    @app.post("/api/review/mark", dependencies=[Depends(require_auth)])
    def review_mark(payload: MarkRequest) -> Dict[str, Any]:
        session = review_session(payload.youtube_url, payload.store_url)
        staged = session.mark_reviewed(payload.product_ids, payload.decision)
        return {"staged": staged, **_pending_state(session)}

    @app.post("/api/review/edit", dependencies=[Depends(require_auth)])
    def review_edit(payload: EditRequest) -> Dict[str, Any]:
        session = review_session(payload.youtube_url, payload.store_url)
        change = session.stage_edit(
            payload.product_id,
            name=payload.name,
            price=payload.price,
            description=payload.description,
        )
        return {
            "product_id": payload.product_id,
            "change": change.fields(),
            **_pending_state(session),
        }

    @app.post("/api/review/submit", dependencies=[Depends(require_auth)])
    def review_submit(payload: SessionRequest) -> Dict[str, Any]:
        session = review_session(payload.youtube_url, payload.store_url)
        ack = session.submit_all()
        return {"status": "saved", "result": ack, **_pending_state(session)}

    @app.post("/api/review/discard", dependencies=[Depends(require_auth)])
    def review_discard(payload: DiscardRequest) -> Dict[str, Any]:
        session = review_session(payload.youtube_url, payload.store_url)
        discarded = session.discard(confirmed=payload.confirm)
        return {"discarded": discarded, **_pending_state(session)}

    @app.post("/api/review/bulk", dependencies=[Depends(require_auth)])
    def review_bulk(payload: BulkReviewRequest) -> Dict[str, Any]:
        session = review_session(payload.youtube_url, payload.store_url)
        ack = session.review_now(
            payload.product_ids, payload.decision, review_all=payload.review_all
        )
        return {"status": "reviewed", "result": ack, **_pending_state(session)}

    @app.post("/api/review/refresh", dependencies=[Depends(require_auth)])
    def review_refresh(payload: SessionRequest) -> Dict[str, Any]:
        session = review_session(payload.youtube_url, payload.store_url)
        products = session.refresh()
        return {"total": len(products), **_pending_state(session)}

    @app.get("/api/store/current", dependencies=[Depends(require_auth)])
    def store_current() -> Dict[str, Any]:
        return _store_state(context)

    @app.post("/api/store/select", dependencies=[Depends(require_auth)])
    def store_select(payload: SelectStoreRequest) -> Dict[str, Any]:
        store = client.store_details(payload.store_url.strip())
        context.select_store(store)
        return _store_state(context)

    @app.post("/api/store/mine", dependencies=[Depends(require_auth)])
    def store_mine() -> Dict[str, Any]:
        context.select_store(client.my_store())
        return _store_state(context)

    @app.get("/api/store/collections", dependencies=[Depends(require_auth)])
    def store_collections(
        page: int = Query(1, ge=1),
        per_page: int = Query(20, ge=1, le=100),
        search: str = "",
        tab: str = "all",
    ) -> Dict[str, Any]:
        if context.current_store is None:
            raise MissingParametersError("Select a store first.")
        result = client.store_collections(
            context.current_store.store_url, page=page, per_page=per_page
        )
        collections = _filter_collections(result.collections, search, tab)
        body = result.model_dump()
        body["collections"] = [c.model_dump() for c in collections]
        return body

    return app


if __name__ == "__main__":
    import uvicorn

    settings = get_settings()
    uvicorn.run(
        "video2commerce.server:create_app",
        factory=True,
        host=settings.dashboard_host,
        port=settings.dashboard_port,
        reload=settings.dashboard_reload,
    )
