import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy.exc import SQLAlchemyError

from backend.core import config
from backend.database import engine, ensure_user_schema
from backend.models import user
from backend.routes import admin_routes, auth_routes

logging.basicConfig(
    level=config.LOG_LEVEL,
    format='%(asctime)s %(levelname)s %(name)s: %(message)s',
)

config.validate_runtime_config()

app = FastAPI()

app.add_middleware(
    CORSMiddleware,
    allow_origins=config.CORS_ALLOW_ORIGINS,
    allow_credentials=True,
    allow_methods=['*'],
    allow_headers=['*'],
)

logger = logging.getLogger(__name__)


@app.on_event('startup')
def initialize_database() -> None:
    try:
        user.Base.metadata.create_all(bind=engine)
        ensure_user_schema()
    except SQLAlchemyError:
        logger.exception('Database initialization failed. Check DATABASE_URL.')


@app.get('/')
def root():
    return {'status': 'CET Portal API Running'}


app.include_router(auth_routes.router, prefix='/api')
app.include_router(admin_routes.router, prefix='/api/admin')
