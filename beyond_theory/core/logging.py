import structlog
import logging
import sys
from datetime import datetime, timezone
from typing import Any, Dict
import uuid

# Configure structlog
structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        structlog.processors.JSONRenderer()
    ],
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
    wrapper_class=structlog.stdlib.BoundLogger,
    cache_logger_on_first_use=True,
)


class ChatLogger:
    """Structured logger for the messaging service"""

    def __init__(self, name: str = "beyond-theory"):
        self.logger = structlog.get_logger(name)

    def _create_context(self, **kwargs) -> Dict[str, Any]:
        """Create logging context with common fields"""
        context = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "service": "beyond-theory",
            "trace_id": str(uuid.uuid4()),
        }
        context.update(kwargs)
        return context

    def info(self, message: str, **kwargs):
        self.logger.info(message, **self._create_context(**kwargs))

    def warning(self, message: str, **kwargs):
        self.logger.warning(message, **self._create_context(**kwargs))

    def error(self, message: str, **kwargs):
        self.logger.error(message, **self._create_context(**kwargs))

    def debug(self, message: str, **kwargs):
        self.logger.debug(message, **self._create_context(**kwargs))

    # Business-specific logging methods
    def profile_created(self, uid: str, username: str):
        """Log user profile registration"""
        self.info(
            "User profile created",
            event_type="profile_created",
            uid=uid,
            username=username
        )

    def conversation_created(self, conversation_id: str, participant_uids: list, is_public: bool = False):
        """Log conversation creation"""
        self.info(
            "Conversation created",
            event_type="conversation_created",
            conversation_id=conversation_id,
            participant_uids=participant_uids,
            is_public=is_public
        )

    def message_sent(self, message_id: str, conversation_id: str, sender_uid: str):
        """Log message sent event"""
        self.info(
            "Message sent",
            event_type="message_sent",
            message_id=message_id,
            conversation_id=conversation_id,
            sender_uid=sender_uid
        )

    def message_deleted(self, message_id: str, conversation_id: str, user_id: str):
        """Log message deletion"""
        self.info(
            "Message deleted",
            event_type="message_deleted",
            message_id=message_id,
            conversation_id=conversation_id,
            user_id=user_id
        )

    def conversation_read(self, conversation_id: str, user_id: str, last_read_at: str):
        """Log a read marker update"""
        self.info(
            "Conversation marked as read",
            event_type="conversation_read",
            conversation_id=conversation_id,
            user_id=user_id,
            last_read_at=last_read_at
        )

    def database_query(self, operation: str, table: str, duration: float, success: bool = True):
        """Log database query event"""
        level = "debug" if success else "error"
        getattr(self, level)(
            "Database query executed",
            event_type="database_query",
            operation=operation,
            table=table,
            duration=duration,
            success=success
        )

    def api_request(self, method: str, endpoint: str, status_code: int, duration: float):
        """Log API request event"""
        self.info(
            "API request",
            event_type="api_request",
            method=method,
            endpoint=endpoint,
            status_code=status_code,
            duration=duration
        )

    def api_error(self, method: str, endpoint: str, status_code: int, error_message: str):
        """Log API error event"""
        self.error(
            "API error",
            event_type="api_error",
            method=method,
            endpoint=endpoint,
            status_code=status_code,
            error_message=error_message
        )

    def security_event(self, event_type: str, user_id: str = None, details: str = None):
        """Log security event"""
        self.warning(
            "Security event",
            event_type="security_event",
            security_event_type=event_type,
            user_id=user_id,
            details=details
        )

    def system_event(self, event_type: str, component: str, status: str, details: str = None):
        """Log system event"""
        self.info(
            "System event",
            event_type="system_event",
            system_event_type=event_type,
            component=component,
            status=status,
            details=details
        )


# Global logger instance
chat_logger = ChatLogger()


def setup_logging(log_level: str = "INFO"):
    """Setup structured logging for the application"""

    logging.basicConfig(
        level=getattr(logging, log_level.upper()),
        format="%(message)s",
        stream=sys.stdout
    )

    # Configure specific loggers
    logging.getLogger("uvicorn").setLevel(logging.INFO)
    logging.getLogger("uvicorn.access").setLevel(logging.INFO)
    logging.getLogger("fastapi").setLevel(logging.INFO)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    logging.getLogger("redis").setLevel(logging.WARNING)

    chat_logger.system_event(
        event_type="application_startup",
        component="beyond-theory",
        status="started",
        details="Structured logging initialized"
    )
