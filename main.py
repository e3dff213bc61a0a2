import logging
from typing import Optional

from fastapi import Depends, FastAPI, Header, HTTPException, Path, Query, Request, WebSocket, WebSocketDisconnect
from fastapi.concurrency import run_in_threadpool
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pymongo.errors import PyMongoError

import accounts
import admin
import commitments
import dashboard
import migration
import prospects
import reports
from accounts import Viewer
from activity import FEED, publish_activity
from config import Settings
from context import AppContext, build_context
from errors import CallboardError
from identity import Identity
from logging_config import setup_logging
from schemas import (
    ActiveUpdate,
    AnnouncementCreate,
    CommitmentCreate,
    MigrationResponse,
    PasswordResetRequest,
    ProfileUpdate,
    ProspectEntry,
    ProspectStatusUpdate,
    ProspectWindow,
    RegisterRequest,
    ReportCreate,
    ReportOutcome,
    Role,
    RoleUpdate,
)

logger = logging.getLogger(__name__)

DATE_KEY = r"^\d{4}-\d{2}-\d{2}$"


# ---------------------------
# Dependencies
# ---------------------------
def get_context(request: Request) -> AppContext:
    return request.app.state.context


def get_identity(
    authorization: Optional[str] = Header(default=None),
    ctx: AppContext = Depends(get_context),
) -> Identity:
    if not authorization or not authorization.lower().startswith("bearer "):
        raise HTTPException(status_code=401, detail="Missing bearer token")
    return ctx.identity.verify_token(authorization.split(" ", 1)[1].strip())


def get_viewer(identity: Identity = Depends(get_identity), ctx: AppContext = Depends(get_context)) -> Viewer:
    return accounts.load_viewer(ctx, identity)


# ---------------------------
# App factory
# ---------------------------
def create_app(context: Optional[AppContext] = None) -> FastAPI:
    if context is None:
        settings = Settings.from_env()
        setup_logging(settings.log_level, settings.log_json)
        context = build_context(settings)

    app = FastAPI(title="Callboard API")
    app.state.context = context

    app.add_middleware(
        CORSMiddleware,
        allow_origins=context.settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(CallboardError)
    async def handle_domain_error(request: Request, exc: CallboardError):
        return JSONResponse(status_code=exc.status_code, content={"detail": exc.message})

    @app.exception_handler(PyMongoError)
    async def handle_store_error(request: Request, exc: PyMongoError):
        logger.exception("Document store failure on %s %s", request.method, request.url.path)
        return JSONResponse(status_code=503, content={"detail": "Database operation failed"})

    _register_routes(app)
    return app


def _register_routes(app: FastAPI) -> None:
    # ---------------------------
    # Health + Test endpoints
    # ---------------------------
    @app.get("/")
    def read_root():
        return {"message": "Callboard Backend Running"}

    @app.get("/test")
    def test_database(ctx: AppContext = Depends(get_context)):
        response = {
            "backend": "✅ Running",
            "database": "❌ Not Available",
            "backend_type": ctx.store.backend,
            "timezone": ctx.settings.timezone,
            "collections": [],
        }
        try:
            response["collections"] = ctx.store.db.list_collection_names()[:10]
            response["database"] = "✅ Connected & Working"
        except PyMongoError as e:
            response["database"] = f"⚠️  Connected but Error: {str(e)[:50]}"
        return response

    # ---------------------------
    # Accounts
    # ---------------------------
    @app.post("/api/auth/register", status_code=201)
    def register(payload: RegisterRequest, ctx: AppContext = Depends(get_context)):
        # Self sign-up always creates employees; other roles are granted by an admin
        return accounts.register(ctx, payload.email, payload.password, payload.name, "employee")

    @app.post("/api/auth/password-reset")
    def password_reset(payload: PasswordResetRequest, ctx: AppContext = Depends(get_context)):
        return {"link": accounts.request_password_reset(ctx, payload.email)}

    @app.post("/api/session")
    def open_session(identity: Identity = Depends(get_identity), ctx: AppContext = Depends(get_context)):
        return accounts.open_session(ctx, identity)

    @app.get("/api/me")
    def me(viewer: Viewer = Depends(get_viewer), ctx: AppContext = Depends(get_context)):
        return {"uid": viewer.uid, "email": viewer.email, "name": viewer.name, "role": viewer.role}

    @app.patch("/api/me")
    def update_me(
        payload: ProfileUpdate, viewer: Viewer = Depends(get_viewer), ctx: AppContext = Depends(get_context)
    ):
        return accounts.update_profile(ctx, viewer.uid, payload.name, payload.photo_url)

    # ---------------------------
    # Commitments
    # ---------------------------
    @app.post("/api/commitments", status_code=201)
    async def submit_commitment(
        payload: CommitmentCreate, viewer: Viewer = Depends(get_viewer), ctx: AppContext = Depends(get_context)
    ):
        commitment = await run_in_threadpool(commitments.submit_commitment, ctx, viewer.uid, payload)
        await publish_activity(
            ctx, viewer.uid, "commitment", f"{viewer.name} committed to {commitment['target']} calls"
        )
        return commitment

    @app.get("/api/commitments")
    def list_commitments(
        status: Optional[str] = Query(default=None, pattern="^(achieved|missed)$"),
        viewer: Viewer = Depends(get_viewer),
        ctx: AppContext = Depends(get_context),
    ):
        return commitments.list_commitments(ctx, viewer.uid, status)

    @app.get("/api/commitments/{date_key}")
    def get_commitment(
        date_key: str = Path(..., pattern=DATE_KEY),
        viewer: Viewer = Depends(get_viewer),
        ctx: AppContext = Depends(get_context),
    ):
        return commitments.get_commitment(ctx, viewer.uid, date_key)

    # ---------------------------
    # Reports
    # ---------------------------
    @app.post("/api/reports", status_code=201)
    async def submit_report(
        payload: ReportCreate, viewer: Viewer = Depends(get_viewer), ctx: AppContext = Depends(get_context)
    ):
        report = await run_in_threadpool(reports.submit_report, ctx, viewer.uid, payload)
        await publish_activity(
            ctx,
            viewer.uid,
            "report",
            f"{viewer.name} made {report['callsMade']} of {report['callsTarget']} committed calls",
        )
        return report

    @app.get("/api/reports")
    def list_reports(
        outcome: ReportOutcome = "all", viewer: Viewer = Depends(get_viewer), ctx: AppContext = Depends(get_context)
    ):
        return reports.list_reports(ctx, viewer.uid, outcome)

    @app.get("/api/reports/{date_key}")
    def get_report(
        date_key: str = Path(..., pattern=DATE_KEY),
        viewer: Viewer = Depends(get_viewer),
        ctx: AppContext = Depends(get_context),
    ):
        return reports.get_report(ctx, viewer.uid, date_key)

    # ---------------------------
    # Prospects
    # ---------------------------
    @app.get("/api/prospects")
    def list_prospects(
        status: Optional[str] = Query(default=None, pattern="^(pending|converted|lost)$"),
        window: Optional[ProspectWindow] = None,
        search: Optional[str] = None,
        viewer: Viewer = Depends(get_viewer),
        ctx: AppContext = Depends(get_context),
    ):
        return prospects.list_prospects(ctx, viewer.uid, status, window, search)

    @app.post("/api/prospects", status_code=201)
    def add_prospect(
        payload: ProspectEntry, viewer: Viewer = Depends(get_viewer), ctx: AppContext = Depends(get_context)
    ):
        return prospects.add_prospect(ctx, viewer.uid, payload)

    @app.patch("/api/prospects/{prospect_id}")
    def update_prospect(
        prospect_id: str,
        payload: ProspectStatusUpdate,
        viewer: Viewer = Depends(get_viewer),
        ctx: AppContext = Depends(get_context),
    ):
        return prospects.update_prospect_status(ctx, viewer.uid, prospect_id, payload.status)

    # ---------------------------
    # Dashboard
    # ---------------------------
    @app.get("/api/dashboard")
    def get_dashboard(viewer: Viewer = Depends(get_viewer), ctx: AppContext = Depends(get_context)):
        return dashboard.dashboard(ctx, viewer)

    @app.get("/api/leaderboard")
    def get_leaderboard(viewer: Viewer = Depends(get_viewer), ctx: AppContext = Depends(get_context)):
        return dashboard.leaderboard(ctx, viewer)

    @app.get("/api/announcements")
    def list_announcements(viewer: Viewer = Depends(get_viewer), ctx: AppContext = Depends(get_context)):
        return admin.list_announcements(ctx)

    # ---------------------------
    # Admin
    # ---------------------------
    @app.get("/api/admin/overview")
    def admin_overview(viewer: Viewer = Depends(get_viewer), ctx: AppContext = Depends(get_context)):
        return admin.overview(ctx, viewer)

    @app.post("/api/admin/announcements", status_code=201)
    def create_announcement(
        payload: AnnouncementCreate, viewer: Viewer = Depends(get_viewer), ctx: AppContext = Depends(get_context)
    ):
        return admin.create_announcement(ctx, viewer, payload)

    @app.get("/api/admin/employees")
    def list_employees(
        search: Optional[str] = None,
        role: Optional[Role] = None,
        status: Optional[str] = Query(default=None, pattern="^(active|inactive)$"),
        viewer: Viewer = Depends(get_viewer),
        ctx: AppContext = Depends(get_context),
    ):
        return accounts.list_employees(ctx, viewer, search, role, status)

    @app.post("/api/admin/employees", status_code=201)
    def create_employee(
        payload: RegisterRequest, viewer: Viewer = Depends(get_viewer), ctx: AppContext = Depends(get_context)
    ):
        return accounts.create_employee(ctx, viewer, payload.email, payload.password, payload.name, payload.role)

    @app.get("/api/admin/employees/{uid}")
    def employee_detail(uid: str, viewer: Viewer = Depends(get_viewer), ctx: AppContext = Depends(get_context)):
        return accounts.get_employee_detail(ctx, viewer, uid)

    @app.patch("/api/admin/employees/{uid}/role")
    def change_role(
        uid: str, payload: RoleUpdate, viewer: Viewer = Depends(get_viewer), ctx: AppContext = Depends(get_context)
    ):
        return accounts.change_role(ctx, viewer, uid, payload.role)

    @app.patch("/api/admin/employees/{uid}/status")
    def set_active(
        uid: str, payload: ActiveUpdate, viewer: Viewer = Depends(get_viewer), ctx: AppContext = Depends(get_context)
    ):
        return accounts.set_active(ctx, viewer, uid, payload.is_active)

    @app.post("/api/admin/migrate", response_model=MigrationResponse)
    def run_migration(viewer: Viewer = Depends(get_viewer), ctx: AppContext = Depends(get_context)):
        accounts.require_admin(viewer)
        log = migration.run_data_migration(ctx)
        return {"entries": log.entries, "errors": log.errors}

    # ---------------------------
    # WebSocket for the admin activity feed
    # ---------------------------
    @app.websocket("/ws/activity")
    async def activity_feed(websocket: WebSocket, token: str = Query(...)):
        ctx: AppContext = websocket.app.state.context
        try:
            viewer = accounts.load_viewer(ctx, ctx.identity.verify_token(token))
            accounts.require_privileged(viewer)
        except CallboardError:
            await websocket.close(code=1008)
            return
        await ctx.feed.connect(FEED, websocket)
        try:
            while True:
                # Clients only listen; keep the socket open
                await websocket.receive_text()
        except WebSocketDisconnect:
            ctx.feed.disconnect(FEED, websocket)


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=app.state.context.settings.port)
