import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware

from .api import audit_logs, occupants, owners, payments, properties, reports, service_charges
from .config import Base, SessionLocal, engine, settings
from .core.errors import register_exception_handlers
from .core.logging import configure_logging
from .core.request_context import REQUEST_ID_HEADER, actor_from_request, assign_request_id
from .services.audit import audit_log

configure_logging(settings.log_level, settings.json_logs)
logger = logging.getLogger(__name__)

app = FastAPI(title="Estate Ledger - Service Charge Billing")

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

register_exception_handlers(app)


@app.on_event("startup")
def startup() -> None:
    # Tables are created in place; there is no migration history to replay.
    Base.metadata.create_all(bind=engine)
    logger.info("Estate ledger started against %s", engine.url.render_as_string(hide_password=True))


app.include_router(properties.router, prefix="/properties", tags=["properties"])
app.include_router(owners.router, prefix="/owners", tags=["owners"])
app.include_router(occupants.router, prefix="/occupants", tags=["occupants"])
app.include_router(payments.router, prefix="/payments", tags=["payments"])
app.include_router(service_charges.router, prefix="/service-charges", tags=["service-charges"])
app.include_router(reports.router, tags=["reports"])
app.include_router(audit_logs.router)


@app.get("/health", tags=["system"])
def health() -> dict:
    return {"status": "ok"}


@app.middleware("http")
async def audit_trail(request: Request, call_next):
    request_id = assign_request_id(request)
    response = await call_next(request)
    response.headers[REQUEST_ID_HEADER] = request_id
    if request.method not in {"POST", "PUT", "PATCH", "DELETE"}:
        return response
    with SessionLocal() as session:
        audit_log(
            db_session=session,
            actor=actor_from_request(request),
            action=f"{request.method} {request.url.path}",
            target_entity_type="HTTP",
            target_entity_id=request.url.path,
            after={"status": response.status_code, "request_id": request_id},
        )
        session.commit()
    return response
