import logging

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

from etuition.core import config
from etuition.core.errors import EtuitionError
from etuition.core.log import configure_logging
from etuition.database import init_database
from etuition.routes import (
    admin_routes,
    application_routes,
    auth_routes,
    payment_routes,
    tuition_routes,
    user_routes,
)

configure_logging()
config.validate_runtime_config()

app = FastAPI(title='eTuition API')

app.add_middleware(
    CORSMiddleware,
    allow_origins=config.CORS_ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=['*'],
    allow_headers=['*'],
)

logger = logging.getLogger(__name__)


@app.exception_handler(EtuitionError)
async def handle_domain_error(request: Request, exc: EtuitionError) -> JSONResponse:
    return JSONResponse(status_code=exc.status_code, content={'message': exc.message})


@app.exception_handler(RequestValidationError)
async def handle_validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = exc.errors()
    message = errors[0].get('msg', 'Invalid request.') if errors else 'Invalid request.'
    message = message.removeprefix('Value error, ')
    return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content={'message': message})


@app.exception_handler(SQLAlchemyError)
async def handle_database_error(request: Request, exc: SQLAlchemyError) -> JSONResponse:
    logger.exception('Database failure on %s %s', request.method, request.url.path)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={'message': 'Database error.'},
    )


@app.on_event('startup')
def initialize_database() -> None:
    try:
        init_database()
    except SQLAlchemyError:
        logger.exception('Database initialization failed. Check DATABASE_URL.')


@app.get('/')
def root():
    return {'status': 'eTuition Server is Running'}


app.include_router(auth_routes.router)
app.include_router(user_routes.router)
app.include_router(tuition_routes.router)
app.include_router(application_routes.router)
app.include_router(payment_routes.router)
app.include_router(admin_routes.router)
