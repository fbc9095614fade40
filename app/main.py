import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles

from app.api.v1 import index
from app.api.v1 import auth
from app.api.v1 import companies
from app.api.v1 import root_form_templates
from app.api.v1 import collaborators
from app.api.v1 import form_templates
from app.api.v1 import form_assignments
from app.api.v1 import form_submissions
from app.api.v1 import admin
from app.api.v1 import discussions

from app.core.config import settings
from app.core.logging import setup_logging

setup_logging()

app = FastAPI(title=settings.app_name)

# Middlewares
origins = []

if settings.allowed_hosts:
    origins = settings.allowed_hosts.split(",")

app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Register routes
app.include_router(index.router, prefix="/api/v1")
app.include_router(auth.router, prefix="/api/v1/auth", tags=["Auth"])
app.include_router(companies.router, prefix="/api/v1", tags=["Companies"])
app.include_router(root_form_templates.router,
                   prefix="/api/v1/root/form-templates", tags=["Template Library"])
app.include_router(collaborators.router,
                   prefix="/api/v1/collaborators", tags=["Collaborators"])
app.include_router(form_templates.router,
                   prefix="/api/v1/form-templates", tags=["Form Templates"])
app.include_router(form_assignments.router,
                   prefix="/api/v1", tags=["Assignments"])
app.include_router(form_submissions.router,
                   prefix="/api/v1", tags=["Form Submissions"])
app.include_router(admin.router, prefix="/api/v1/admin", tags=["Administrator"])
app.include_router(discussions.router,
                   prefix="/api/v1/discussions", tags=["Discussions"])

# Static files serving (uploads land in static/uploads)
app.mount("/static", StaticFiles(directory=settings.static_dir), name="static")

if __name__ == "__main__":
    uvicorn.run(
        app,
        host=settings.host,
        port=settings.port,
        log_config=None,
        log_level=None,
    )
