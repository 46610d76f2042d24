import logging
import os

from fastapi import FastAPI

from track2give.db.database import init_db
from track2give.api.routes import food_items, analytics

logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)

app = FastAPI(title="Track2Give", version="0.1.0")


@app.on_event("startup")
def startup():
    init_db()


app.include_router(food_items.router, tags=["food items"])
app.include_router(analytics.router, tags=["impact"])


@app.get("/health")
def health():
    return {"status": "ok"}
