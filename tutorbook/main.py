import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy.exc import SQLAlchemyError

from tutorbook.core import config
from tutorbook.database import Base, engine
from tutorbook.models import appointment, slot, user  # noqa: F401
from tutorbook.routes import appointment_routes, slot_routes

logging.basicConfig(
    level=config.LOG_LEVEL,
    format='%(asctime)s %(levelname)s %(name)s: %(message)s',
)

app = FastAPI(title='tutorbook')

app.add_middleware(
    CORSMiddleware,
    allow_origins=config.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=['*'],
    allow_headers=['*'],
)

logger = logging.getLogger(__name__)


@app.on_event('startup')
def initialize_database() -> None:
    config.validate_runtime_config()
    try:
        Base.metadata.create_all(bind=engine)
    except SQLAlchemyError:
        logger.exception('Database initialization failed. Check DATABASE_URL and database credentials.')


@app.get('/')
def root():
    return {'status': 'Booking API Running'}


app.include_router(slot_routes.router, prefix='/slots')
app.include_router(appointment_routes.router, prefix='/appointments')
