import inspect
from functools import lru_cache
from typing import Callable, Mapping


@lru_cache(100)
def get_function_defaults(for_func: Callable) -> dict:
    """ {name: default} for the keyword arguments of a function that have a default value """
    keyword_kinds = (inspect.Parameter.POSITIONAL_OR_KEYWORD, inspect.Parameter.KEYWORD_ONLY)
    return {
        name: param.default
        for name, param in inspect.signature(for_func).parameters.items()
        if param.kind in keyword_kinds and param.default is not inspect.Parameter.empty
    }


def pluck_kwargs_from(dct: Mapping, for_func: Callable) -> dict:
    """ Take the keyword arguments `for_func` accepts from `dct`; missing ones get their defaults """
    return {name: dct.get(name, default)
            for name, default in get_function_defaults(for_func).items()}
