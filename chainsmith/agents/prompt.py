"""Prompt text for the built-in agents and the executor's observations."""

DEFAULT_PREFIX = """Assistant is a large language model designed to help with a wide range of tasks, from answering simple questions to providing in-depth explanations and discussions. Assistant can use tools to look up information or take actions it cannot do on its own, and it reads tool responses carefully before answering.

TOOLS
-----
Assistant can use the following tools:

{tools}"""

DEFAULT_SUFFIX = """

Begin! Use the tools available when they help, and give your best and most complete final answer."""

TOOL_RESPONSE_TEMPLATE = """TOOL RESPONSE:
---------------------
{observation}

Using the tool response above, either use another tool or give your final answer. Respond in the required JSON format and NOTHING else."""

DEFAULT_TOOL_CALLING_PREFIX = (
    "You are a helpful assistant. Use the available tools when they help you "
    "answer, and answer directly when they do not."
)

# Observations the executor feeds back to the model
INVALID_FORMAT_OBSERVATION = (
    "Invalid format, remember the instructions regarding the format and try again"
)
TOOL_NOT_FOUND_OBSERVATION = "{tool} is not a valid tool, try one of [{tool_names}]."
USAGE_LIMIT_OBSERVATION = (
    "You have used the tool {tool} too many times, you CANNOT and MUST NOT use it again"
)
TOOL_ERROR_OBSERVATION = "Error: Tool '{tool}' failed: {error}"
