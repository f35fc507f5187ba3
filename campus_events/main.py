from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from campus_events.core.logging_config import configure_logging
from campus_events.database.db import Base, engine
from campus_events.models import events, notifications, registrations, venues  # noqa: F401
from campus_events.routes import events as event_routes
from campus_events.routes import registrations as registration_routes
from campus_events.routes import reports, venues as venue_routes

configure_logging()

app = FastAPI(title="Campus Events")

# Configure CORS
origins = [
    "*"
]

app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Create all tables (in production, use migrations such as Alembic)
Base.metadata.create_all(bind=engine)

# Include the routers
app.include_router(event_routes.router)
app.include_router(registration_routes.router)
app.include_router(venue_routes.router)
app.include_router(reports.router)
