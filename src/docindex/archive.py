"""Archive processing: ZIP payload in, flat Record list out.

Matching members are handled in fixed-size batches. Members inside a batch
are read and extracted concurrently in worker threads; batches run one after
another so at most one batch of decoded file text is alive at a time.
"""

from __future__ import annotations

import asyncio
import io
import threading
import zipfile
import zlib

import structlog

from docindex.errors import DocIndexError, ErrorCode
from docindex.extractor import (
    DEFAULT_BASE_URL,
    DEFAULT_CONTENT_ROOT,
    SUPPORTED_EXTENSIONS,
    ExtractionResult,
    extract_records,
)
from docindex.models.record import Record

log = structlog.get_logger()

DEFAULT_BATCH_SIZE = 25
DEFAULT_BATCH_PAUSE_SECONDS = 0.01


class ZipArchive:
    """Thread-safe read access to the members of an in-memory ZIP archive."""

    def __init__(self, payload: bytes) -> None:
        try:
            self._zip = zipfile.ZipFile(io.BytesIO(payload))
        except (zipfile.BadZipFile, zipfile.LargeZipFile) as exc:
            raise DocIndexError(
                code=ErrorCode.ARCHIVE_INVALID,
                message=f"Downloaded archive could not be opened: {exc}",
                suggestion="The download may be truncated. Try refreshing again later.",
                recoverable=True,
            ) from exc
        # Reads share one underlying file object.
        self._lock = threading.Lock()

    def members(self) -> list[zipfile.ZipInfo]:
        return self._zip.infolist()

    def read_text(self, member: zipfile.ZipInfo) -> str:
        with self._lock:
            data = self._zip.read(member)
        return data.decode("utf-8")

    def close(self) -> None:
        self._zip.close()


def is_content_file(member: zipfile.ZipInfo, content_root: str = DEFAULT_CONTENT_ROOT) -> bool:
    return (
        not member.is_dir()
        and content_root in member.filename
        and member.filename.endswith(SUPPORTED_EXTENSIONS)
    )


def _process_member(
    archive: ZipArchive,
    member: zipfile.ZipInfo,
    content_root: str,
    base_url: str,
) -> ExtractionResult:
    try:
        content = archive.read_text(member)
    except (
        zipfile.BadZipFile,
        zlib.error,
        EOFError,
        UnicodeDecodeError,
        NotImplementedError,
        OSError,
    ) as exc:
        return ExtractionResult(diagnostic=f"unreadable member: {exc}")

    # One bad file only costs its own Records.
    try:
        return extract_records(
            member.filename, content, content_root=content_root, base_url=base_url
        )
    except Exception as exc:
        log.warning("extract_failed", path=member.filename, exc_info=True)
        return ExtractionResult(diagnostic=f"extraction failed: {exc!r}")


async def process_archive(
    payload: bytes,
    *,
    content_root: str = DEFAULT_CONTENT_ROOT,
    base_url: str = DEFAULT_BASE_URL,
    batch_size: int = DEFAULT_BATCH_SIZE,
    batch_pause: float = DEFAULT_BATCH_PAUSE_SECONDS,
) -> list[Record]:
    """Extract every Record from a downloaded documentation archive.

    Raises DocIndexError(ARCHIVE_INVALID) when the payload is not a readable
    ZIP. Problems with individual files only reduce the output. A Record whose
    id was already produced by an earlier file is dropped.
    """
    archive = ZipArchive(payload)
    try:
        members = [m for m in archive.members() if is_content_file(m, content_root)]

        records: list[Record] = []
        seen_ids: set[str] = set()
        diagnostics = 0

        for start in range(0, len(members), batch_size):
            batch = members[start : start + batch_size]
            results = await asyncio.gather(
                *(
                    asyncio.to_thread(_process_member, archive, member, content_root, base_url)
                    for member in batch
                )
            )

            for member, result in zip(batch, results, strict=True):
                if result.diagnostic is not None:
                    diagnostics += 1
                    log.debug("extract_diagnostic", path=member.filename, reason=result.diagnostic)
                for record in result.records:
                    if record.id in seen_ids:
                        log.debug("duplicate_record_dropped", id=record.id, path=member.filename)
                        continue
                    seen_ids.add(record.id)
                    records.append(record)

            if batch_pause > 0 and start + batch_size < len(members):
                await asyncio.sleep(batch_pause)

        log.info(
            "archive_processed",
            files=len(members),
            records=len(records),
            diagnostics=diagnostics,
        )
        return records
    finally:
        archive.close()
