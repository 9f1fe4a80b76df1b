import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI
from mini_pos.api.routes import orders, items
from mini_pos.core.config import get_settings
from mini_pos.core.database import Database

settings = get_settings()

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s | %(levelname)-8s | %(name)s - %(message)s"
)


@asynccontextmanager
async def lifespan(app: FastAPI):
    db = Database(settings.DATABASE_URL, echo=settings.DATABASE_ECHO)
    db.open()
    app.state.db = db
    try:
        yield
    finally:
        db.close()


app = FastAPI(
    title=settings.PROJECT_NAME,
    description="Point-of-sale inventory and order backend",
    version="1.0.0",
    lifespan=lifespan
)
app.state.settings = settings

# Include routers
app.include_router(items.router, prefix="/api/v1/items", tags=["items"])
app.include_router(orders.router, prefix="/api/v1/orders", tags=["orders"])

@app.get("/")
async def root():
    return {"message": "Mini POS API"}

@app.get("/health")
async def health_check():
    return {"status": "healthy"}

if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
