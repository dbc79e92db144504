"""FastAPI application serving the gate, the submission form and the admin views."""

from __future__ import annotations

from contextlib import asynccontextmanager
from pathlib import Path
from typing import Optional

from fastapi import FastAPI, File, Form, Request, UploadFile
from fastapi.responses import HTMLResponse, JSONResponse, RedirectResponse, Response
from fastapi.templating import Jinja2Templates
from jinja2 import Environment, FileSystemLoader, select_autoescape
from starlette.exceptions import HTTPException as StarletteHTTPException

from subportal import __version__
from subportal.admin import (
    ADMIN_LOGIN_ROUTE,
    AdminDashboard,
    AdminLogin,
    AdminSession,
    load_dashboard,
    require_admin,
)
from subportal.config.settings import AppConfig
from subportal.gate import GateRegistry, GateState, new_gate_key
from subportal.models import FileMetadata, SubmissionInput
from subportal.storage import KeyValueStore, SubmissionStore, open_store
from subportal.upload import SUBMIT_FAILED_MESSAGE, SubmissionForm
from subportal.utils.logging import get_logger, set_request_id, set_view
from subportal.utils.result import StorageError, ValidationError
from subportal.utils.scheduling import AsyncioScheduler, Scheduler
from subportal.web.filters import FILTERS

logger = get_logger("web.app")

TEMPLATES_DIR = Path(__file__).parent / "templates"

ENTRY_ROUTE = "/"
UPLOAD_ROUTE = "/upload"
DASHBOARD_ROUTE = "/admin-dashboard"

LOGOUT_FAILED_MESSAGE = "Could not log out. Please try again."


def parse_selection(raw: str) -> Optional[int]:
    """Selection key from the query string; anything but an integer clears it."""
    try:
        return int(raw)
    except (TypeError, ValueError):
        return None


def build_templates(templates_dir: Path = TEMPLATES_DIR) -> Jinja2Templates:
    env = Environment(
        loader=FileSystemLoader(str(templates_dir)),
        autoescape=select_autoescape(["html", "xml"]),
        trim_blocks=True,
        lstrip_blocks=True,
    )
    env.filters.update(FILTERS)
    env.globals["version"] = __version__
    return Jinja2Templates(env=env)


def _redirect(url: str) -> RedirectResponse:
    return RedirectResponse(url, status_code=303)


def create_app(
    config: Optional[AppConfig] = None,
    kv: Optional[KeyValueStore] = None,
    scheduler: Optional[Scheduler] = None,
) -> FastAPI:
    """
    Build the web application.

    Args:
        config: Application configuration (defaults if omitted)
        kv: Key-value store (built from config.storage if omitted)
        scheduler: Timer source (the running asyncio loop if omitted)

    Returns:
        Configured FastAPI app
    """
    config = config or AppConfig()
    if kv is None:
        kv = open_store(
            config.storage.backend,
            config.storage.data_file,
            config.storage.quota_bytes,
        )
    scheduler = scheduler or AsyncioScheduler()

    store = SubmissionStore(kv)
    session = AdminSession(kv)
    gates = GateRegistry(config.gate, scheduler)
    admin_login = AdminLogin(config.admin, session, scheduler)
    templates = build_templates()
    cookie_name = config.web.gate_cookie

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info("app_started", storage=config.storage.backend)
        yield
        gates.shutdown()
        logger.info("app_stopped")

    app = FastAPI(title="subportal", version=__version__, lifespan=lifespan)
    app.state.config = config
    app.state.kv = kv
    app.state.store = store
    app.state.session = session
    app.state.gates = gates

    @app.middleware("http")
    async def request_context(request: Request, call_next):
        set_request_id(new_gate_key()[:8])
        set_view(request.url.path)
        response = await call_next(request)
        logger.debug(
            "request_handled",
            method=request.method,
            path=request.url.path,
            status=response.status_code,
        )
        return response

    @app.exception_handler(StarletteHTTPException)
    async def unknown_route(request: Request, exc: StarletteHTTPException) -> Response:
        if exc.status_code == 404:
            return _redirect(ENTRY_ROUTE)
        return JSONResponse({"detail": exc.detail}, status_code=exc.status_code)

    def leave_gate(request: Request) -> None:
        """Navigating to another page unmounts the browser's gate."""
        gates.unmount(request.cookies.get(cookie_name))

    def render_gate(request: Request, key: str, status_code: int = 200) -> HTMLResponse:
        gate = gates.get_or_mount(key)
        response = templates.TemplateResponse(
            request,
            "login.html",
            {"gate": gate.snapshot()},
            status_code=status_code,
        )
        response.set_cookie(cookie_name, key, httponly=True, samesite="lax")
        return response

    # Entry gate

    @app.get(ENTRY_ROUTE, response_class=HTMLResponse)
    async def entry(request: Request) -> HTMLResponse:
        key = request.cookies.get(cookie_name) or new_gate_key()
        gates.mount(key)
        return render_gate(request, key)

    @app.post(ENTRY_ROUTE)
    async def submit_identifier(request: Request, access_id: str = Form("")) -> Response:
        key = request.cookies.get(cookie_name) or new_gate_key()
        gate = gates.get_or_mount(key)

        if gate.locked:
            logger.info("gate_submit_while_locked", remaining=gate.lock_remaining_seconds)
            return render_gate(request, key, status_code=429)

        outcome = await gate.submit_and_wait(access_id)

        if outcome in (GateState.ACCEPTED, GateState.ADMIN_REDIRECT):
            gates.unmount(key)
            target = UPLOAD_ROUTE if outcome == GateState.ACCEPTED else ADMIN_LOGIN_ROUTE
            response = _redirect(target)
            response.set_cookie(cookie_name, key, httponly=True, samesite="lax")
            return response
        if outcome == GateState.REJECTED:
            return render_gate(request, key, status_code=401)
        if outcome == GateState.LOCKED:
            return render_gate(request, key, status_code=429)
        return render_gate(request, key)

    @app.get("/gate/state")
    async def gate_state(request: Request) -> JSONResponse:
        gate = gates.get(request.cookies.get(cookie_name))
        if gate is None:
            return JSONResponse({"state": None}, status_code=404)
        return JSONResponse(gate.snapshot().to_dict())

    # Submission form

    def render_upload(
        request: Request,
        values: SubmissionInput = SubmissionInput(),
        error: str = "",
        status_code: int = 200,
    ) -> HTMLResponse:
        return templates.TemplateResponse(
            request,
            "upload.html",
            {"values": values, "error": error},
            status_code=status_code,
        )

    @app.get(UPLOAD_ROUTE, response_class=HTMLResponse)
    async def upload_page(request: Request) -> Response:
        key = request.cookies.get(cookie_name)
        leave_gate(request)
        if not gates.is_admitted(key):
            return _redirect(ENTRY_ROUTE)
        return render_upload(request)

    @app.post(UPLOAD_ROUTE)
    async def upload_submit(
        request: Request,
        submitter_id: str = Form("", alias="id"),
        submitter_name: str = Form("", alias="name"),
        message: str = Form(""),
        file: Optional[UploadFile] = File(None),
    ) -> Response:
        if not gates.is_admitted(request.cookies.get(cookie_name)):
            return _redirect(ENTRY_ROUTE)

        metadata = None
        if file is not None and file.filename:
            size = file.size
            if size is None:
                size = len(await file.read())
            metadata = FileMetadata(
                name=file.filename,
                content_type=file.content_type or "",
                size=size,
            )

        values = SubmissionInput(
            submitter_id=submitter_id,
            submitter_name=submitter_name,
            message=message,
            file=metadata,
        )

        form = SubmissionForm(store, config.submission, scheduler)
        try:
            result = await form.submit_and_wait(values)
        finally:
            form.unmount()

        if result.is_err():
            error = result.unwrap_err()
            status_code = 400 if isinstance(error, ValidationError) else 500
            return render_upload(request, values, error.message, status_code=status_code)

        return templates.TemplateResponse(
            request,
            "upload_success.html",
            {
                "record": result.unwrap(),
                "reset_after": config.submission.success_display_seconds,
            },
        )

    # Admin

    @app.get(ADMIN_LOGIN_ROUTE, response_class=HTMLResponse)
    async def admin_login_page(request: Request) -> Response:
        leave_gate(request)
        if session.is_authenticated():
            return _redirect(DASHBOARD_ROUTE)
        return templates.TemplateResponse(request, "admin_login.html", {"error": ""})

    @app.post(ADMIN_LOGIN_ROUTE)
    async def admin_login_submit(
        request: Request,
        username: str = Form(""),
        password: str = Form(""),
    ) -> Response:
        try:
            result = await admin_login.login_and_wait(username, password)
        except StorageError as e:
            logger.error("admin_login_store_failed", error=str(e))
            return templates.TemplateResponse(
                request,
                "admin_login.html",
                {"error": SUBMIT_FAILED_MESSAGE},
                status_code=500,
            )

        if result.is_err():
            return templates.TemplateResponse(
                request,
                "admin_login.html",
                {"error": result.unwrap_err().message},
                status_code=401,
            )
        return _redirect(DASHBOARD_ROUTE)

    def render_dashboard(
        request: Request,
        search: str = "",
        selected: Optional[int] = None,
        error: str = "",
        status_code: int = 200,
    ) -> Response:
        loaded = load_dashboard(store, session, search=search, selected=selected)
        if loaded.is_err():
            return _redirect(loaded.unwrap_err().redirect_to)

        return templates.TemplateResponse(
            request,
            "dashboard.html",
            {"dashboard": loaded.unwrap(), "error": error},
            status_code=status_code,
        )

    @app.get(DASHBOARD_ROUTE, response_class=HTMLResponse)
    async def admin_dashboard(
        request: Request,
        q: str = "",
        selected: str = "",
    ) -> Response:
        leave_gate(request)

        guard = require_admin(session)
        if guard.is_err():
            return _redirect(guard.unwrap_err().redirect_to)

        return render_dashboard(request, search=q, selected=parse_selection(selected))

    @app.post("/admin-logout")
    async def admin_logout(request: Request) -> Response:
        try:
            target = AdminDashboard(store, session).logout()
        except StorageError as e:
            logger.error("admin_logout_store_failed", key=e.key, error=e.message)
            return render_dashboard(request, error=LOGOUT_FAILED_MESSAGE, status_code=500)
        return _redirect(target)

    return app
