"""Tool contract and a function-backed implementation.

A tool is a named callable the model can ask for. The executor hands it the
decoded arguments with ``set_inputs``, tells it which call it serves with
``set_call_id``, awaits ``execute_callable`` and then reads ``result``.
"""

import inspect
from collections.abc import Callable
from typing import Any, Protocol, runtime_checkable

from pydantic import BaseModel

from agentcore.shared.concurrency import to_thread_limited


@runtime_checkable
class Tool(Protocol):
    name: str
    description: str
    result: Any

    def parameters_schema(self) -> dict[str, Any]: ...

    def set_inputs(self, inputs: dict[str, Any]) -> None: ...

    def set_call_id(self, call_id: str) -> None: ...

    async def execute_callable(self) -> None: ...


class FunctionTool:
    """Wraps a plain or async function as a tool.

    With ``input_model`` the arguments are validated into a single model
    instance which is passed as the only argument. Without it they are passed
    as keyword arguments.

    Example:
        class WeatherInput(BaseModel):
            city: str

        async def get_weather(params: WeatherInput) -> dict[str, str]:
            ...

        tool = FunctionTool("get_weather", "Current weather", get_weather, WeatherInput)
    """

    def __init__(
        self,
        name: str,
        description: str,
        func: Callable[..., Any],
        input_model: type[BaseModel] | None = None,
    ) -> None:
        self.name = name
        self.description = description
        self.func = func
        self.input_model = input_model
        self.inputs: dict[str, Any] = {}
        self.call_id: str | None = None
        self.result: Any = None

    def parameters_schema(self) -> dict[str, Any]:
        if self.input_model is None:
            return {"type": "object", "properties": {}}
        return self.input_model.model_json_schema()

    def set_inputs(self, inputs: dict[str, Any]) -> None:
        self.inputs = inputs

    def set_call_id(self, call_id: str) -> None:
        self.call_id = call_id

    async def execute_callable(self) -> None:
        self.result = None
        if self.input_model is not None:
            args: tuple[Any, ...] = (self.input_model.model_validate(self.inputs),)
            kwargs: dict[str, Any] = {}
        else:
            args, kwargs = (), dict(self.inputs)

        if inspect.iscoroutinefunction(self.func):
            self.result = await self.func(*args, **kwargs)
        else:
            self.result = await to_thread_limited(self.func, *args, **kwargs)

    def __repr__(self) -> str:
        return f"FunctionTool(name={self.name!r})"
