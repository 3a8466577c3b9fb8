"""
chainsmith - compose language model calls into chains and tool-using agents.

The core is model-agnostic: prompts and message formatting, the chain
abstraction (with streaming and memory), and the agent executor. LiteLLM and
MCP adapters are included for talking to real models and tool servers.
"""

from chainsmith.config.logging import install_null_handler

__version__ = "0.1.0"

install_null_handler()
