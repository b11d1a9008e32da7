from contextlib import asynccontextmanager
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from routers import student, teacher
from database import close_db, connect_db
from dependencies import get_sessions
from errors import ClassroomError
from logging_config import configure_logging
import uvicorn

logger = configure_logging()

@asynccontextmanager
async def lifespan(app: FastAPI):
    connect_db()
    logger.info("Classroom service started")
    yield
    # Stop pending countdowns so none submits after shutdown.
    get_sessions().cancel_all()
    close_db()

app = FastAPI(title="Classroom", version="1.0.0", lifespan=lifespan)

app.include_router(teacher.router, prefix="/teacher", tags=["teacher"])
app.include_router(student.router, prefix="/student", tags=["student"])

@app.exception_handler(ClassroomError)
async def classroom_error_handler(request: Request, exc: ClassroomError):
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.detail)
    return JSONResponse({"detail": exc.detail}, status_code=exc.status_code)

@app.get("/api/status")
async def api_status():
    return {"status": "online", "app": "Classroom", "version": "1.0.0"}

if __name__ == "__main__":
    uvicorn.run(app, host="0.0.0.0", port=8000)
