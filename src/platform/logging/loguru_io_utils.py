from inspect import FullArgSpec, getfile, getfullargspec, getsourcelines
from os.path import basename
import re
from time import time
from typing import Any, Callable, Optional

from src.platform.logging.loguru_io_config import (
    SENSITIVE_KEYWORDS,
    GeneratorMethod,
    call_depth_var,
    chain_start_time_var,
)


MASK = '********'
MAX_CONTENT_LENGTH = 500

# Matches `password='x'`, `'secret': "x"` and `signing_key=abc` inside repr() output
_SENSITIVE_PATTERN = re.compile(
    r"""(['"]?\b(?:%s)\b['"]?\s*[:=]\s*)('[^']*'|"[^"]*"|[^,\s)}\]]+)"""
    % '|'.join(sorted(SENSITIVE_KEYWORDS, key=len, reverse=True)),
    re.IGNORECASE,
)


def handle_yield(yield_method: Optional[GeneratorMethod] = None) -> str:
    return f'yield: {yield_method} | ' if yield_method else ''


def get_chain_start_time() -> float:
    if not (start_time := chain_start_time_var.get()):
        start_time = time()
        chain_start_time_var.set(start_time)
    return start_time


def build_call_target_func_path(func: Callable[..., Any]) -> str:
    try:
        lineno = getsourcelines(func)[1]
    except (OSError, TypeError):
        lineno = 0
    return f'{basename(getfile(getattr(func, "__func__", func)))}::{func.__qualname__}:{lineno}'


def reset_call_depth() -> None:
    layer = call_depth_var.get() - 1
    call_depth_var.set(layer)
    if not layer:
        chain_start_time_var.set(0)


def normalize_args_kwargs(
    func: Callable[..., Any], *args: Any, **kwargs: Any
) -> tuple[tuple[Any, ...], dict[Any, Any]]:
    if hasattr(func, '__wrapped__'):
        func = func.__wrapped__  # type: ignore
    full_arg_spec: FullArgSpec = getfullargspec(func)
    spec_args: list[str] = full_arg_spec.args

    if not full_arg_spec.varkw:
        kw_list: list[str] = spec_args + full_arg_spec.kwonlyargs
        kwargs = {k: v for k, v in kwargs.items() if k in kw_list}

    if not full_arg_spec.varargs:
        spec_default: list[Any] = list(full_arg_spec.defaults) if full_arg_spec.defaults else []
        args_dict = dict(
            zip(
                spec_args,
                [None] * (len(spec_args) - len(spec_default)) + spec_default,
                strict=False,
            )
        )
        if args_dict := {k: v for k, v in args_dict.items() if k not in kwargs}:
            args_max_len: int = len(args_dict)
            args_min_len: int = len([value for value in args_dict.values() if value is None])
            if len(args) not in range(args_min_len, args_max_len + 1):
                args = args[:args_max_len]
        else:
            args = ()

    return args, kwargs


def mask_sensitive(data: Any) -> Any:
    """Mask sensitive `key=value` pairs found in the string form of data."""
    text = str(data)
    masked = _SENSITIVE_PATTERN.sub(rf"\1'{MASK}'", text)
    return data if masked == text else masked


def should_mask_keyword(keyword: Any, value: Any) -> Any:
    if isinstance(keyword, str) and keyword.lower() in SENSITIVE_KEYWORDS:
        return MASK
    return value


def truncate_content(content: Any) -> Any:
    text = str(content)
    if len(text) <= MAX_CONTENT_LENGTH:
        return content
    return f'{text[:MAX_CONTENT_LENGTH]}...(+{len(text) - MAX_CONTENT_LENGTH} chars)'
