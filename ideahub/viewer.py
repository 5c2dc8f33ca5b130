# viewer.py
import asyncio
import logging
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Optional

import uvicorn
from fastapi import Depends, FastAPI, Request
from fastapi.responses import JSONResponse, RedirectResponse
from fastapi.staticfiles import StaticFiles
from fastapi.templating import Jinja2Templates
from google.api_core.exceptions import GoogleAPICallError
from starlette.middleware.sessions import SessionMiddleware

from ideahub.accounts import router as accounts_router
from ideahub.auth import UserInfo, require_auth
from ideahub.config import STATUS_CHOICES, Settings, configure_logging
from ideahub.errors import NoChannelOnRecord, NotAuthenticated, NotFoundError, ValidationError
from ideahub.services import AppServices, build_services

logger = logging.getLogger(__name__)

STATIC_DIR = Path(__file__).parent / "static"

# Templates
templates = Jinja2Templates(directory=str(STATIC_DIR / "html"))


def _error_page(request: Request, title: str, message: str, status_code: int):
    return templates.TemplateResponse(request, "error.html", {
        "title": title,
        "message": message,
    }, status_code=status_code)


def get_services(request: Request) -> AppServices:
    return request.app.state.services


def create_app(services: Optional[AppServices] = None, settings: Optional[Settings] = None) -> FastAPI:
    """
    Build the FastAPI application.

    Services passed in are used as-is (tests); otherwise they are built
    from the environment when the app starts and closed when it stops.
    """
    settings = settings or (services.settings if services else Settings.from_env())
    configure_logging(settings.log_level)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        owned = app.state.services is None
        if owned:
            app.state.services = build_services(settings)
            logger.info("Services initialized")
        try:
            yield
        finally:
            if owned:
                app.state.services.close()
                app.state.services = None

    app = FastAPI(title="IdeaHub", lifespan=lifespan)
    app.state.services = services

    app.add_middleware(SessionMiddleware, secret_key=settings.get_session_secret(), same_site="lax")
    app.include_router(accounts_router)
    app.mount("/static", StaticFiles(directory=str(STATIC_DIR)), name="static")

    @app.exception_handler(NotAuthenticated)
    async def redirect_to_login(request: Request, exc: NotAuthenticated):
        return RedirectResponse("/login", status_code=303)

    @app.exception_handler(ValidationError)
    async def validation_error(request: Request, exc: ValidationError):
        return _error_page(request, "Invalid idea", str(exc), 400)

    @app.exception_handler(NotFoundError)
    async def not_found(request: Request, exc: NotFoundError):
        return _error_page(request, "Not found", "This idea does not exist.", 404)

    @app.exception_handler(GoogleAPICallError)
    async def store_unavailable(request: Request, exc: GoogleAPICallError):
        logger.error(f"Firestore call failed: {exc}")
        return _error_page(request, "Service unavailable", "The idea store is unavailable. Try again later.", 503)

    _register_routes(app)
    return app


# --------------------------------------------------
# Routes
# --------------------------------------------------

def _register_routes(app: FastAPI) -> None:

    @app.get("/healthz")
    async def healthz():
        return JSONResponse({"status": "ok"})

    @app.get("/")
    async def list_ideas(request: Request,
                         user: UserInfo = Depends(require_auth),
                         services: AppServices = Depends(get_services)):
        """Serves the idea list with the create form"""
        status = request.query_params.get("status") or None
        search = request.query_params.get("search") or None
        cards = await services.ideas.list_ideas(user.uid, status=status, search=search)
        return templates.TemplateResponse(request, "index.html", {
            "user": user,
            "cards": cards,
            "status_choices": STATUS_CHOICES,
            "selected_status": status or "",
            "search": search or "",
        })

    @app.post("/idea")
    async def add_idea(request: Request,
                       user: UserInfo = Depends(require_auth),
                       services: AppServices = Depends(get_services)):
        form = await request.form()
        await services.ideas.create_idea(
            user.uid,
            form.get("title"),
            form.get("description"),
            category=form.get("category"),
            channel_name_hint=form.get("channel_name"),
        )
        return RedirectResponse("/", status_code=303)

    @app.post("/idea/add-from-ia")
    async def add_idea_from_suggestion(request: Request,
                                       user: UserInfo = Depends(require_auth),
                                       services: AppServices = Depends(get_services)):
        form = await request.form()
        await services.ideas.create_from_suggestion(
            user.uid,
            form.get("title"),
            form.get("description"),
            category=form.get("category"),
            ai_generated=True,
        )
        return RedirectResponse("/", status_code=303)

    @app.get("/edit/{idea_id}")
    async def edit_idea(request: Request, idea_id: str,
                        user: UserInfo = Depends(require_auth),
                        services: AppServices = Depends(get_services)):
        idea = await services.ideas.get_idea(idea_id, user.uid)
        return templates.TemplateResponse(request, "edit.html", {
            "user": user,
            "idea": idea,
            "status_choices": STATUS_CHOICES,
        })

    @app.post("/edit/update/{idea_id}")
    async def update_idea(request: Request, idea_id: str,
                          user: UserInfo = Depends(require_auth),
                          services: AppServices = Depends(get_services)):
        form = await request.form()
        await services.ideas.update_idea(idea_id, user.uid, {
            "title": form.get("title"),
            "description": form.get("description"),
            "category": form.get("category"),
            "status": form.get("status"),
            "youtube_video_id": form.get("youtube_video_id"),
        })
        return RedirectResponse("/", status_code=303)

    @app.post("/idea/delete/{idea_id}")
    async def delete_idea(idea_id: str,
                          user: UserInfo = Depends(require_auth),
                          services: AppServices = Depends(get_services)):
        await services.ideas.delete_idea(idea_id, user.uid)
        return RedirectResponse("/", status_code=303)

    @app.get("/dashboard/{idea_id}")
    async def idea_dashboard(request: Request, idea_id: str,
                             user: UserInfo = Depends(require_auth),
                             services: AppServices = Depends(get_services)):
        try:
            dashboard = await services.ideas.idea_dashboard(idea_id, user.uid)
        except NoChannelOnRecord as e:
            return templates.TemplateResponse(request, "dashboard.html", {
                "user": user,
                "idea": e.idea,
                "dashboard": None,
                "message": str(e),
            })
        return templates.TemplateResponse(request, "dashboard.html", {
            "user": user,
            "idea": dashboard.idea,
            "dashboard": dashboard,
            "message": None,
        })

    @app.get("/global-dashboard")
    async def global_dashboard(request: Request,
                               user: UserInfo = Depends(require_auth),
                               services: AppServices = Depends(get_services)):
        dashboard = await services.ideas.global_dashboard(user.uid)
        return templates.TemplateResponse(request, "global_dashboard.html", {
            "user": user,
            "dashboard": dashboard,
        })

    @app.get("/brainstorm")
    async def brainstorm_page(request: Request,
                              user: UserInfo = Depends(require_auth),
                              services: AppServices = Depends(get_services)):
        return templates.TemplateResponse(request, "brainstorm.html", {
            "user": user,
            "result": None,
            "keywords": "",
            "category": "",
            "ai_enabled": services.suggestions.is_enabled(),
        })

    @app.post("/brainstorm")
    async def brainstorm(request: Request,
                         user: UserInfo = Depends(require_auth),
                         services: AppServices = Depends(get_services)):
        form = await request.form()
        keywords = (form.get("keywords") or "").strip()
        category = (form.get("category") or "").strip()

        result = await asyncio.to_thread(services.suggestions.generate_suggestions, keywords, category)
        if result.error:
            logger.info(f"Brainstorm for user {user.uid} returned no suggestions: {result.error}")

        return templates.TemplateResponse(request, "brainstorm.html", {
            "user": user,
            "result": result,
            "keywords": keywords,
            "category": category,
            "ai_enabled": services.suggestions.is_enabled(),
        })


app = create_app()


# Run the server
if __name__ == "__main__":
    uvicorn.run("ideahub.viewer:app", host="127.0.0.1", port=8000, reload=True)
