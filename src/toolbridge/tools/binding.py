"""Parameter binding policy handed to the agent.

The agent binds free-form user values to declared parameter names. The
bridge supplies the full descriptor table in the instructions; the optional
code-level check in `check_arguments` backs up the two hard rules (no
invented names, no call without the required values).
"""
import json
from typing import Any, Dict, List, Mapping, TYPE_CHECKING

from .tool_types import ToolDescriptor

if TYPE_CHECKING:
    from .catalogue import Catalogue

DescriptorTable = Dict[str, Dict[str, Dict[str, Any]]]


def descriptor_table(tools: Mapping[str, ToolDescriptor]) -> DescriptorTable:
    """Build the {tool: {param: descriptor}} table in serializable form."""
    return {
        name: {
            param_name: param.to_prompt_dict()
            for param_name, param in tool.parameters.items()
        }
        for name, tool in tools.items()
    }


def check_arguments(tool: ToolDescriptor, arguments: Mapping[str, Any]) -> List[str]:
    """Return binding problems of an argument set, empty when it can be forwarded."""
    problems = []
    unknown = [name for name in arguments if name not in tool.parameters]
    if unknown:
        problems.append(f"unknown parameter(s): {', '.join(sorted(unknown))}")

    missing = [
        name for name, param in tool.parameters.items()
        if param.required and arguments.get(name) is None
    ]
    if missing:
        problems.append(f"missing required parameter(s): {', '.join(sorted(missing))}")
    return problems


INSTRUCTIONS_TEMPLATE = """You are {agent_name}, an agent that answers requests by calling the tools listed below.

AVAILABLE TOOLS AND THEIR PARAMETERS:
{table}

Each parameter entry gives its type, description, default value (null when there is none) and whether it is required.

PARAMETER BINDING RULES:
1. Parameter names MUST be taken from the table above for the selected tool. Never invent or rename a parameter.
2. Take only the VALUES from the user's message and bind each value to the parameter whose description it matches.
3. When an optional parameter has no value in the message and has a default, use the default.
4. When a required parameter has no value in the message, do not call the tool. Ask the user for the missing value instead.
5. Every tool call is independent. Use the tool output to answer; the user cannot see tool output directly.

EXAMPLE:
Table entry:
  "GetCustomer": {{
    "customerId": {{"type": "integer", "description": "The customer ID", "default": null, "required": true}},
    "includeOrders": {{"type": "boolean", "description": "Include order history", "default": false, "required": false}}
  }}
User: "Get customer 12345" -> call GetCustomer with customerId = 12345 and includeOrders = false (default).
User: "Get customer with orders" -> customerId is missing, so reply: "Please provide the customer ID to retrieve."
"""


def build_instructions(catalogue: "Catalogue", agent_name: str) -> str:
    """Render the agent system instructions for a catalogue snapshot."""
    table = json.dumps(catalogue.descriptor_table(), indent=2, ensure_ascii=False)
    return INSTRUCTIONS_TEMPLATE.format(agent_name=agent_name, table=table)
