"""
Agent feature: uniform tool outcome and agent response shapes.

`success` is the discriminant: ToolSuccess carries message + data,
ToolError carries error. `action` is always set for UI/log correlation.
"""

import json
from typing import Any, Literal

from pydantic import BaseModel, Field


class ToolSuccess(BaseModel):
    success: Literal[True] = True
    action: str
    message: str
    data: dict[str, Any] | None = None


class ToolError(BaseModel):
    success: Literal[False] = False
    action: str
    error: str


ToolExecutionResult = ToolSuccess | ToolError


class AgentResponse(BaseModel):
    """What every caller (HTTP, email, chat) receives."""
    message: str
    tool_results: list[ToolExecutionResult] = Field(default_factory=list)


def normalize_tool_output(action: str, output: Any) -> ToolExecutionResult:
    """Coerce whatever a tool returned into a ToolExecutionResult.

    Local tools already return one. Connector tools return dicts in the
    Composio shape ({"successful", "data", "error"}) or plain text.
    """
    if isinstance(output, (ToolSuccess, ToolError)):
        return output

    if isinstance(output, str):
        try:
            output = json.loads(output)
        except ValueError:
            return ToolSuccess(action=action, message=output or f"Executed {action}")

    if isinstance(output, dict):
        if output.get("successful") is False or output.get("success") is False:
            error = output.get("error") or f"{action} failed"
            return ToolError(action=action, error=str(error))
        data = output.get("data", output)
        return ToolSuccess(
            action=action,
            message=f"Executed {action}",
            data=data if isinstance(data, dict) else {"result": data},
        )

    return ToolSuccess(action=action, message=f"Executed {action}", data={"result": output})


def tool_message_content(result: ToolExecutionResult) -> str:
    """JSON content handed back to the model as the ToolMessage body."""
    return json.dumps(result.model_dump(mode="json"), ensure_ascii=False)
