from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import PlainTextResponse
from sqlalchemy import text
from beyond_theory.api.core import router as core_router
from beyond_theory.api.users import router as users_router
from beyond_theory.core.database import engine, create_tables
from beyond_theory.core.cache import cache_manager
from beyond_theory.core.errors import ChatError
from beyond_theory.core.metrics import setup_metrics
from beyond_theory.core.logging import setup_logging, chat_logger
from config import settings
import logging
import time

logger = logging.getLogger(__name__)

# Setup structured logging
setup_logging(settings.log_level)

app = FastAPI(
	title="Beyond Theory Messaging API",
	description="Conversations, messages and unread tracking for the Beyond Theory productivity app",
	version="1.0.0"
)

# Setup Prometheus metrics
setup_metrics(app)


@app.on_event("startup")
async def on_startup():
	"""Initialize the backing store and the profile cache on startup"""
	try:
		chat_logger.system_event(
			event_type="application_startup",
			component="beyond-theory",
			status="starting",
			details="Initializing services"
		)

		await cache_manager.connect()
		chat_logger.system_event(
			event_type="service_initialized",
			component="redis",
			status="started" if cache_manager.redis else "unavailable",
			details="Profile cache initialized"
		)

		create_tables()
		chat_logger.system_event(
			event_type="service_initialized",
			component="database",
			status="started",
			details="Database tables created successfully"
		)
	except Exception as e:
		chat_logger.system_event(
			event_type="application_startup",
			component="beyond-theory",
			status="failed",
			details=f"Startup failed: {str(e)}"
		)
		raise


@app.on_event("shutdown")
async def on_shutdown():
	"""Cleanup on shutdown"""
	try:
		await cache_manager.disconnect()
		logger.info("Application shutdown completed successfully")
	except Exception as e:
		logger.error(f"Error during shutdown: {e}")


@app.middleware("http")
async def log_requests(request: Request, call_next):
	start_time = time.perf_counter()
	response = await call_next(request)
	chat_logger.api_request(
		method=request.method,
		endpoint=request.url.path,
		status_code=response.status_code,
		duration=time.perf_counter() - start_time
	)
	return response


@app.exception_handler(ChatError)
async def chat_error_handler(request: Request, exc: ChatError):
	chat_logger.api_error(
		method=request.method,
		endpoint=request.url.path,
		status_code=exc.status_code,
		error_message=exc.message
	)
	if exc.status_code >= 500:
		return PlainTextResponse("Internal Server Error", status_code=exc.status_code)
	return PlainTextResponse(exc.message, status_code=exc.status_code)


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
	fields = sorted({
		".".join(str(part) for part in error["loc"][1:])
		for error in exc.errors() if len(error["loc"]) > 1
	})
	message = f"Missing or invalid fields: {', '.join(fields)}" if fields else "Malformed request"
	chat_logger.api_error(
		method=request.method,
		endpoint=request.url.path,
		status_code=400,
		error_message=message
	)
	return PlainTextResponse(message, status_code=400)


app.include_router(core_router)
app.include_router(users_router)


@app.get("/")
def root():
	return {
		"service": "beyond-theory",
		"docs": "/docs",
		"status": "running",
		"publicConversationId": settings.public_conversation_id,
		"polling": {
			"conversationsSeconds": settings.conversation_poll_interval,
			"unreadSeconds": settings.unread_poll_interval
		}
	}


@app.get("/health")
async def health_check():
	"""Health check endpoint"""
	health_status = {"status": "healthy"}

	try:
		with engine.connect() as conn:
			conn.execute(text("SELECT 1"))
		health_status["database"] = "connected"
	except Exception as e:
		health_status["database"] = f"error: {str(e)}"
		health_status["status"] = "unhealthy"

	# The cache is optional; profile reads fall back to the database
	redis_available = await cache_manager.is_available()
	health_status["cache"] = "connected" if redis_available else "disconnected"

	return health_status


def run():
	import uvicorn

	uvicorn.run("beyond_theory.main:app", host=settings.host, port=settings.port, reload=settings.debug)


if __name__ == "__main__":
	run()
