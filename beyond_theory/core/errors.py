class ChatError(Exception):
	"""Base class for errors surfaced by the messaging core"""

	status_code = 500

	def __init__(self, message: str):
		super().__init__(message)
		self.message = message


class ValidationError(ChatError):
	"""A required field is missing or malformed"""

	status_code = 400


class AuthorizationError(ChatError):
	"""The caller does not own or may not access the resource"""

	status_code = 403


class NotFoundError(ChatError):
	"""A referenced user, conversation or message does not exist"""

	status_code = 404


class BackingStoreError(ChatError):
	"""The backing store is unreachable or rejected the operation"""

	status_code = 500
