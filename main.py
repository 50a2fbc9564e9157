import uvicorn

from accent_vote.main import app
from accent_vote.database import db
from accent_vote.config import settings

@app.get("/")
async def root():
    return {
        "name": settings.PROJECT_NAME,
        "version": "1.0.0",
        "status": "running"
    }

@app.get("/health")
async def health_check():
    try:
        await db.client.admin.command('ping')
        db_status = "connected"
    except Exception:
        db_status = "disconnected"

    return {
        "status": "healthy",
        "database": db_status
    }


def serve():
    """Run the API with uvicorn using HOST and PORT from the settings"""
    uvicorn.run("main:app", host=settings.HOST, port=settings.PORT, log_config=None)


if __name__ == "__main__":
    serve()
