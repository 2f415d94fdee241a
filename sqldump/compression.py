"""
Post-dump gzip compression for sqldump.

A producer thread streams the finished dump through gzip into a bounded
queue while the calling thread writes the compressed chunks to disk. The
producer reports success or failure through a Future, so an error on
either side fails the whole operation instead of leaving a truncated
archive behind.
"""

import gzip
import logging
import queue
import shutil
import threading
from concurrent.futures import Future
from pathlib import Path
from typing import Union

from .exceptions import CompressionError
from .models import CompressionLevel


CHUNK_SIZE = 64 * 1024
QUEUE_SIZE = 16
PUT_TIMEOUT = 0.1

_DONE = object()


def _put(chunks: queue.Queue, item, stop: threading.Event) -> bool:
    """Block until the item is queued; give up once stop is set."""
    while not stop.is_set():
        try:
            chunks.put(item, timeout=PUT_TIMEOUT)
            return True
        except queue.Full:
            continue
    return False


class _QueueWriter:
    """File-like sink that hands each written block to the consumer."""

    def __init__(self, chunks: queue.Queue, stop: threading.Event):
        self.chunks = chunks
        self.stop = stop

    def write(self, data) -> int:
        if not _put(self.chunks, bytes(data), self.stop):
            raise CompressionError("compression aborted by consumer")
        return len(data)

    def flush(self) -> None:
        pass


def _produce(
    source: Path,
    chunks: queue.Queue,
    result: Future,
    stop: threading.Event,
    level: int
) -> None:
    try:
        with open(source, 'rb') as src, gzip.GzipFile(
            filename=source.name, mode='wb', compresslevel=level,
            fileobj=_QueueWriter(chunks, stop)
        ) as gz:
            shutil.copyfileobj(src, gz, CHUNK_SIZE)
        result.set_result(None)
    except Exception as e:
        result.set_exception(e)
    finally:
        _put(chunks, _DONE, stop)


def compress_file(
    path: Union[str, Path],
    level: CompressionLevel = CompressionLevel.DEFAULT,
    remove_source: bool = True
) -> Path:
    """
    Compress a finished dump file to '<path>.gz'.

    Args:
        path: Dump file to compress.
        level: gzip compression level.
        remove_source: Delete the uncompressed file after success.

    Returns:
        Path of the compressed file.

    Raises:
        CompressionError: if reading, compressing or writing fails. The
            partial .gz file is removed and the source is kept.
    """
    source = Path(path)
    target = Path(f"{source}.gz")
    chunks: queue.Queue = queue.Queue(maxsize=QUEUE_SIZE)
    result: Future = Future()
    stop = threading.Event()

    logging.info(f"[gzip] compressing {source} (level {level.name.lower()})")
    producer = threading.Thread(
        target=_produce, args=(source, chunks, result, stop, level.value), daemon=True
    )
    producer.start()

    try:
        with open(target, 'wb') as out:
            while True:
                chunk = chunks.get()
                if chunk is _DONE:
                    break
                out.write(chunk)
        result.result()
    except Exception as e:
        stop.set()
        target.unlink(missing_ok=True)
        logging.error(f"[gzip] {e}")
        if isinstance(e, CompressionError):
            raise
        raise CompressionError(f"failed to compress {source}: {e}") from e
    finally:
        stop.set()
        producer.join()

    if remove_source:
        source.unlink()
    logging.info(f"[gzip] wrote {target}")
    return target
