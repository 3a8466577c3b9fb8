"""
MCP tool source.

Starts an MCP server as a subprocess, speaks JSON-RPC to it over stdio, and
exposes each tool the server lists as a chainsmith Tool.

Example:
    >>> async with McpToolkit("node", ["dice-server/index.js"]) as toolkit:
    ...     executor = AgentExecutor(ConversationalAgent(model, toolkit.tools))
    ...     await executor.run({"input": "Roll 2d20 and keep the highest"})
"""

from __future__ import annotations

import json
from typing import Any

from mcp import ClientSession
from mcp.client.stdio import StdioServerParameters, stdio_client

from chainsmith.config.logging import get_logger
from chainsmith.errors import ToolError
from chainsmith.tools.base import Tool

logger = get_logger(__name__)


def _result_text(result: Any) -> str:
    # MCP returns content as a list of content blocks; only text blocks matter here
    return " ".join(
        content.text for content in result.content if hasattr(content, "text")
    )


class McpTool(Tool):
    """
    One tool exposed by an MCP server.

    Input handling: a JSON object is sent as the arguments as is. Plain text
    is sent under the schema's single property when it has exactly one,
    otherwise under ``"input"``.
    """

    def __init__(
        self,
        session: ClientSession,
        name: str,
        description: str | None,
        input_schema: dict[str, Any] | None,
        usage_limit: int | None = None,
    ):
        self._session = session
        self._name = name
        self._description = description or ""
        self._input_schema = input_schema or {"type": "object", "properties": {}}
        self._usage_limit = usage_limit

    @property
    def name(self) -> str:
        return self._name

    @property
    def description(self) -> str:
        return self._description

    @property
    def parameters(self) -> dict[str, Any]:
        return self._input_schema

    @property
    def usage_limit(self) -> int | None:
        return self._usage_limit

    def build_arguments(self, input: str) -> dict[str, Any]:
        try:
            value = json.loads(input)
        except (json.JSONDecodeError, TypeError):
            value = None
        if isinstance(value, dict):
            return value
        properties = list(self._input_schema.get("properties", {}))
        key = properties[0] if len(properties) == 1 else "input"
        return {key: input}

    async def call(self, input: str) -> str:
        arguments = self.build_arguments(input)
        logger.debug(f"Calling MCP tool '{self._name}' with {arguments}")
        result = await self._session.call_tool(self._name, arguments)
        text = _result_text(result)
        if getattr(result, "isError", False):
            raise ToolError(text or f"MCP tool '{self._name}' reported an error")
        return text


class McpToolkit:
    """
    Async context manager around an MCP stdio server.

    Spawns the server on entry, performs the MCP handshake, and lists its
    tools into ``tools``. The subprocess is terminated on exit.

    Args:
        command: Executable that starts the server (e.g. "node", "uvx")
        args: Command-line arguments for the server
        env: Optional environment for the subprocess
        usage_limits: Optional per-tool usage limits, keyed by tool name
    """

    def __init__(
        self,
        command: str,
        args: list[str] | None = None,
        env: dict[str, str] | None = None,
        usage_limits: dict[str, int] | None = None,
    ):
        self._server_params = StdioServerParameters(command=command, args=list(args or []), env=env)
        self._usage_limits = dict(usage_limits or {})
        self._initialized = False
        self._session: ClientSession | None = None
        self._stdio_context = None
        self._session_context = None
        self.tools: list[McpTool] = []

    async def initialize(self) -> None:
        """Start the server subprocess and load its tool list."""
        if self._initialized:
            return

        # Start the MCP server subprocess and store context manager
        self._stdio_context = stdio_client(self._server_params)
        read_stream, write_stream = await self._stdio_context.__aenter__()

        try:
            self._session_context = ClientSession(read_stream, write_stream)
            self._session = await self._session_context.__aenter__()
            await self._session.initialize()
            self._initialized = True
            self.tools = await self.list_tools()
        except Exception:
            await self.shutdown(force=True)
            raise

        logger.info(
            f"MCP server '{self._server_params.command}' started with "
            f"{len(self.tools)} tool(s): {', '.join(t.name for t in self.tools)}"
        )

    async def list_tools(self) -> list[McpTool]:
        """Fetch the server's current tool list."""
        if not self._initialized or self._session is None:
            raise RuntimeError("MCP toolkit not initialized")

        result = await self._session.list_tools()
        return [
            McpTool(
                self._session,
                name=tool.name,
                description=tool.description,
                input_schema=tool.inputSchema,
                usage_limit=self._usage_limits.get(tool.name),
            )
            for tool in result.tools
        ]

    async def shutdown(self, force: bool = False) -> None:
        """Close the session and terminate the server subprocess."""
        if not self._initialized and not force:
            return

        # Exit the session context manager (closes session)
        if self._session_context is not None:
            await self._session_context.__aexit__(None, None, None)
            self._session_context = None
            self._session = None

        # Exit the stdio context manager (terminates subprocess)
        if self._stdio_context is not None:
            await self._stdio_context.__aexit__(None, None, None)
            self._stdio_context = None

        self.tools = []
        self._initialized = False

    async def __aenter__(self) -> McpToolkit:
        await self.initialize()
        return self

    async def __aexit__(self, *_args) -> None:
        await self.shutdown()
        return None  # Don't suppress exceptions
