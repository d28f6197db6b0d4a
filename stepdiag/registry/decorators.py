"""
Step decorators used inside step definition files.

    from stepdiag.steps import given, then

    @given("I have {int} cucumbers")
    def step_impl(context, count):
        ...

Every call is routed to the registry that is active while the file is loaded.
"""

import inspect

from beartype.typing import Callable, Pattern, Union

from stepdiag.data_classes.diagnostic import Position
from stepdiag.registry.registry import get_registry
from stepdiag.settings import STEP_DECORATOR_NAMES


def _caller_position(depth: int = 2) -> Position:
    frame = inspect.currentframe()
    try:
        for _ in range(depth):
            frame = frame.f_back
        info = inspect.getframeinfo(frame, context=0)
        positions = getattr(info, "positions", None)
        column = positions.col_offset + 1 if positions and positions.col_offset is not None else 0
        return Position(source=info.filename, line=info.lineno, column=column)
    finally:
        del frame


def make_decorator(step_type: str) -> Callable:
    def decorator(description: Union[str, Pattern]):
        position = _caller_position()

        def wrapper(func):
            get_registry().define_step(description, func, position)
            return func

        return wrapper

    decorator.__name__ = step_type
    decorator.__qualname__ = step_type
    decorator.__doc__ = f"Registers the decorated function as a '{step_type}' step definition."
    return decorator


given = make_decorator("given")
when = make_decorator("when")
then = make_decorator("then")
step = make_decorator("step")


def define_parameter_type(
    name: str,
    regexp,
    type=str,
    transformer: Callable = None,
    use_for_snippets: bool = True,
    prefer_for_regexp_match: bool = False,
):
    """Makes `{name}` usable in cucumber expressions of every step definition loaded in the run."""
    get_registry().define_parameter_type(
        name,
        regexp,
        type=type,
        transformer=transformer,
        use_for_snippets=use_for_snippets,
        prefer_for_regexp_match=prefer_for_regexp_match,
    )


def step_globals() -> dict:
    """Names available in a step definition file without importing them"""
    namespace = {name: globals()[name] for name in STEP_DECORATOR_NAMES}
    namespace.update({name.title(): globals()[name] for name in STEP_DECORATOR_NAMES})
    namespace["define_parameter_type"] = define_parameter_type
    return namespace
