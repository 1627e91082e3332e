from typing import Any, Dict, Optional


class DynamoDBWrapperError(Exception):
    """Root of every fault the wrapper raises.

    ``original_error`` keeps the botocore (or pydantic) exception that caused
    the fault; ``context`` holds identifiers that help locate it and is
    rendered after the message.
    """

    def __init__(self, message: str, original_error: Optional[Exception] = None, context: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.original_error = original_error
        self.context: Dict[str, Any] = dict(context) if context else {}

    @property
    def error_code(self) -> Optional[str]:
        """Service fault code, e.g. 'ConditionalCheckFailedException'; None when not from the service."""
        response = getattr(self.original_error, 'response', None)
        if not isinstance(response, dict):
            return None
        return response.get('Error', {}).get('Code')

    def __str__(self) -> str:
        if not self.context:
            return self.message
        details = ", ".join(f"{key}={value}" for key, value in self.context.items())
        return f"{self.message} (Context: {details})"

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.message!r}, context={self.context!r})"
