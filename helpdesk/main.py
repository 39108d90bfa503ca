"""
Helpdesk Ticket Service - FastAPI Backend
"""
from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from helpdesk import __version__
from helpdesk.config import get_settings
from helpdesk.exceptions import TicketRepositoryError
from helpdesk.models.schemas import ErrorResponse
from helpdesk.routes import tickets, categories, health
from helpdesk.middleware.logging_middleware import LoggingMiddleware
from helpdesk.utils.logger import get_logger

logger = get_logger(__name__)
settings = get_settings()

app = FastAPI(
    title="Helpdesk Ticket Service",
    description="Ticket search, pagination and lifecycle API over a hosted list store",
    version=__version__
)

# Middleware runs bottom-up: CORS first, then logging
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.add_middleware(LoggingMiddleware)

# Routers (prefixes are defined in each router module)
app.include_router(tickets.router)
app.include_router(categories.router)
app.include_router(health.router)


@app.exception_handler(TicketRepositoryError)
async def ticket_repository_error_handler(request: Request, exc: TicketRepositoryError):
    """Store failures behind a repository operation surface as 502"""
    logger.warning(f"{request.method} {request.url.path} failed in {exc.operation}: {exc.message}")
    return JSONResponse(
        status_code=status.HTTP_502_BAD_GATEWAY,
        content=ErrorResponse(**exc.to_dict()).model_dump(mode="json")
    )


@app.get("/")
async def root():
    return {"message": "Helpdesk Ticket Service", "version": __version__}


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host=settings.fastapi_host, port=settings.fastapi_port)
