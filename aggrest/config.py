# Configuration settings should be set in app.config
# The AGGREST class attributes hold the defaults, the environment is used as a last resort
import os
import logging
from flask import current_app
from functools import lru_cache
import aggrest
from typing import Any, Optional


@lru_cache(maxsize=128)
def get_config(option: str) -> Optional[Any]:
    """Retrieve a configuration parameter from the app
    :param option: configuration parameter
    :return: configuration value
    """
    try:
        result = current_app.config[option]
    except (KeyError, RuntimeError):
        result = getattr(aggrest.AGGREST, option, os.environ.get(option, None))
    return result


def is_debug() -> bool:
    """
    We use the loglevel to check whether we're running in debug mode
    :return: whether the app is in debug mode
    :rtype: Boolean
    """
    return aggrest.log.getEffectiveLevel() < logging.INFO
