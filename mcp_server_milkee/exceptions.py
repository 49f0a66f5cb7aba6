"""Error types raised by the MILKEE MCP server."""


class MilkeeError(Exception):
    """Base class for all errors surfaced to tool callers."""


class ConfigurationError(MilkeeError):
    """Required settings are missing or invalid."""


class MilkeeApiError(MilkeeError):
    """The MILKEE API answered with a non-2xx status."""

    def __init__(self, status_code: int, body: str) -> None:
        self.status_code = status_code
        self.body = body
        super().__init__(f"MILKEE API Error {status_code}: {body}")


class MilkeeRequestError(MilkeeError):
    """The request never produced an HTTP response (connection, timeout)."""


class UnknownToolError(MilkeeError):
    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f"Unknown tool: {name}")


class ReadOnlyModeError(MilkeeError):
    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f"Tool {name} is not available in read-only mode")


class InvalidArgumentsError(MilkeeError):
    """Tool arguments do not match the tool's input schema."""
