import asyncio
from concurrent.futures import ThreadPoolExecutor
from functools import lru_cache, partial

from config.settings import get_server_config


@lru_cache(maxsize=1)
def get_conversion_pool() -> ThreadPoolExecutor:
    """Shared pool for the synchronous python-pptx work behind the HTTP routes"""
    return ThreadPoolExecutor(
        max_workers=max(1, get_server_config().conversion_workers),
        thread_name_prefix="pptx-conversion",
    )


# Run CPU-bound conversion work in a separate thread
async def run_in_threadpool(thread_pool, func, *args, **kwargs):
    loop = asyncio.get_running_loop()
    return await loop.run_in_executor(thread_pool, partial(func, *args, **kwargs))
