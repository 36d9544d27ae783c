"""
Student Records - FastAPI application entry point.

This module:
1. Sets up structured JSON logging
2. Creates the FastAPI app with CORS middleware
3. Tags every request with an X-Request-ID and logs its latency
4. Maps service errors to {"error": message} responses
5. Registers the student routes and a health check

Run with ``python -m student_records.main`` or
``uvicorn student_records.main:app``.
"""

import time
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from student_records.config import CORS_ORIGINS, HOST, PORT
from student_records.errors import StudentRecordsError
from student_records.logging_config import (
    setup_logging, get_logger, log_with_context,
    request_id_var, generate_request_id
)
from student_records.routes import students

setup_logging()
logger = get_logger("http")

app = FastAPI(
    title="Student Records",
    description=(
        "Manage student records: create, edit and delete students, search, "
        "sort and page through them, and move them in and out as CSV."
    ),
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc"
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=["X-Request-ID", "Content-Disposition"]
)


@app.middleware("http")
async def request_id_middleware(request: Request, call_next):
    """Assign a request ID, expose it in X-Request-ID and log start/finish."""
    req_id = generate_request_id()
    request_id_var.set(req_id)
    start_time = time.time()

    log_with_context(logger, "INFO",
        f"Request started: {request.method} {request.url.path}",
        extra_data={
            "ip": request.client.host if request.client else "unknown",
            "query_params": dict(request.query_params)
        })

    response = await call_next(request)

    duration_ms = (time.time() - start_time) * 1000
    response.headers["X-Request-ID"] = req_id
    log_with_context(logger, "INFO",
        f"Request completed: {request.method} {request.url.path} → {response.status_code}",
        extra_data={
            "duration_ms": round(duration_ms, 2),
            "status_code": response.status_code
        })
    return response


@app.exception_handler(StudentRecordsError)
async def student_records_error_handler(request: Request, exc: StudentRecordsError):
    log_with_context(logger, "WARNING",
        f"{type(exc).__name__}: {exc.message}",
        extra_data={"path": request.url.path, "status_code": exc.status_code})
    return JSONResponse(status_code=exc.status_code, content={"error": exc.message})


@app.exception_handler(RequestValidationError)
async def request_validation_error_handler(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    if errors:
        first = errors[0]
        location = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
        message = f"{location}: {first.get('msg')}" if location else str(first.get("msg"))
    else:
        message = "Invalid request"
    return JSONResponse(status_code=400, content={"error": message})


app.include_router(students.router, tags=["Students"])


@app.get("/health", tags=["Health"])
def health_check():
    return {"status": "healthy", "service": "student-records", "version": "1.0.0"}


@app.get("/", tags=["Root"])
def root():
    """Service information and endpoint index."""
    return {
        "service": "Student Records",
        "version": "1.0.0",
        "docs": "/docs",
        "health": "/health",
        "endpoints": {
            "list": "GET /students",
            "detail": "GET /students/{id}",
            "create": "POST /students",
            "update": "PUT /students/{id}",
            "delete": "DELETE /students/{id}",
            "stats": "GET /students/stats",
            "import": "POST /students/import",
            "import_csv": "POST /students/import/csv",
            "export": "GET /students/export"
        }
    }


def serve():
    import uvicorn

    uvicorn.run(app, host=HOST, port=PORT)


if __name__ == "__main__":
    serve()
