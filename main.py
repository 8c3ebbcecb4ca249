# =====================================================================
# SECTION START: IMPORTS AND APP SETUP
# =====================================================================

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from db import engine, Base
import models  # noqa: F401
from config import AIRLINE_REFERENCE_TIMEOUT, AIRLINE_REFERENCE_URL, SEARCH_RESULT_MAX_AGE_MINUTES
from routers.search import router as search_router
from services.airline_resolver import AirlineResolver
from services.search_store import SearchResultStore

# =====================================================================
# SECTION END: IMPORTS AND APP SETUP
# =====================================================================


# =====================================================================
# SECTION START: FastAPI APP AND CORS
# =====================================================================

app = FastAPI()

# One resolver and one store per process, shared by every request
app.state.resolver = AirlineResolver(dataset_url=AIRLINE_REFERENCE_URL, timeout=AIRLINE_REFERENCE_TIMEOUT)
app.state.store = SearchResultStore(max_age_minutes=SEARCH_RESULT_MAX_AGE_MINUTES)


@app.on_event("startup")
def on_startup():
    Base.metadata.create_all(bind=engine)
    removed = app.state.store.cleanup()
    print(f"[startup] tables ready, expired searches removed={removed}")


app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(search_router)

# =====================================================================
# SECTION END: FastAPI APP AND CORS
# =====================================================================


# =====================================================================
# SECTION START: ROOT AND HEALTH
# =====================================================================

@app.get("/")
def home():
    return {"message": "Flight catalog backend is running"}


@app.get("/health")
def health():
    return {"status": "ok"}

# =====================================================================
# SECTION END: ROOT AND HEALTH
# =====================================================================
