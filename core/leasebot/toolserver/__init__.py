"""Tool-server session management and tool invocation."""

from leasebot.toolserver.exceptions import ToolConnectionError, ToolInvocationError
from leasebot.toolserver.files import GeneratedFile
from leasebot.toolserver.invoker import ToolInvoker, ToolOutput
from leasebot.toolserver.session import ToolServerConfig, ToolSession, ToolSessionManager

__all__ = [
    "GeneratedFile",
    "ToolConnectionError",
    "ToolInvocationError",
    "ToolInvoker",
    "ToolOutput",
    "ToolServerConfig",
    "ToolSession",
    "ToolSessionManager",
]
