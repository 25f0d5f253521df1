from typing import List, Optional


class AgentError(Exception):
    """Base error for the agent. Carries the HTTP status it should be reported with."""

    status_code = 500

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code


class BadRequest(AgentError):
    status_code = 400


class MethodNotAllowed(AgentError):
    status_code = 405

    def __init__(self, method: str):
        super().__init__(f"Method {method} Not Allowed")
        self.method = method


class UpstreamError(AgentError):
    """Network failure, timeout, non-2xx status or empty completion from the provider."""

    status_code = 500

    def __init__(self, message: str, upstream_status: Optional[int] = None):
        super().__init__(message)
        self.upstream_status = upstream_status


class SchemaError(AgentError):
    status_code = 500

    def __init__(self, message: str, fields: Optional[List[str]] = None):
        super().__init__(message)
        self.fields = list(fields or [])


class PublishError(AgentError):
    status_code = 500


class ConfigError(Exception):
    pass
