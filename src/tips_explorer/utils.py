import asyncio
from functools import wraps
from pathlib import Path
import random
import time
from typing import Union

from dynaconf import Dynaconf, Validator
from hexbytes import HexBytes
from loguru import logger


def hex_to_str(hex_value: Union[HexBytes, bytes, str]) -> str:
    # web3 returns HexBytes, fakes and raw JSON-RPC payloads return strings
    if isinstance(hex_value, str):
        return hex_value if hex_value.startswith('0x') else '0x' + hex_value
    if not isinstance(hex_value, (bytes, bytearray)):
        raise TypeError(f"Expected HexBytes or str, got {type(hex_value)}")

    # Convert to hex string, maintaining '0x' prefix
    return '0x' + bytes(hex_value).hex()

def now_ms() -> int:
    """Current Unix time in milliseconds, the unit of a block record's cachedAt"""
    return int(time.time() * 1000)

def load_config(file_path: Union[str, Path] = "config.yml") -> Dynaconf:
    """Load and validate explorer configuration

    Every key can be overridden from the environment with the TIPS_EXPLORER_
    prefix, e.g. TIPS_EXPLORER_STORAGE__BUCKET=tips.

    Params:
        file_path (str | Path): Settings file to load

    Returns:
        Dynaconf: Validated configuration object
    """
    config_path = Path(file_path)
    if not config_path.exists():
        logger.warning(f"Config file {config_path} not found, using environment and defaults only")

    settings = Dynaconf(
        envvar_prefix="TIPS_EXPLORER",
        settings_files=[str(config_path)],
        validators=[
            # Validate structure and types
            Validator('rpc.urls', must_exist=True, is_type_of=list,
                      condition=lambda urls: len(urls) > 0,
                      messages={"condition": "At least one RPC URL is required"}
            ),
            Validator('storage.type', default='local', is_in=['local', 'gcs']),
            Validator('storage.data_dir', default='data'),
            Validator('storage.bucket', must_exist=True, when=Validator('storage.type', eq='gcs')),
            Validator('enrichment.max_concurrency', default=32, is_type_of=int, gte=1),
            Validator('cache.max_age_seconds', default=None),
            Validator('logging.to_file', default=False, is_type_of=bool),
            Validator('logging.destination', default='logs/explorer.log'),
            Validator('metrics.pushgateway', default=None),
        ]
    )
    # Validate all settings at once
    settings.validators.validate()

    return settings

# Decorator for implementing retry logic with exponential backoff for async functions
def async_retry(
    retries: int = 3,
    base_delay: float = 1,
    exponential_backoff: bool = True,
    jitter: bool = True,
):
    """
    Decorator for implementing retry logic with exponential backoff for async functions.

    :param retries: int, number of retry attempts
    :param base_delay: float, base delay between retries in seconds
    :param exponential_backoff: bool, whether to use exponential backoff
    :param jitter: bool, whether to add random jitter to the delay
    :return: function, decorated function
    """
    def decorator(func):
        @wraps(func)
        async def wrapper(*args, **kwargs):
            for attempt in range(1, retries + 1):
                try:
                    return await func(*args, **kwargs)
                except Exception as e:
                    if attempt == retries:
                        logger.error(
                            f"All retry attempts failed for {func.__name__}: {str(e)}"
                        )
                        raise

                    delay = (
                        base_delay * (2 ** (attempt - 1))
                        if exponential_backoff
                        else base_delay
                    )
                    if jitter:
                        delay *= random.uniform(1.0, 1.5)

                    logger.warning(
                        f"Attempt {attempt} failed for {func.__name__}. Retrying in {delay:.2f} seconds. Error: {str(e)}"
                    )
                    await asyncio.sleep(delay)

        return wrapper
    return decorator
