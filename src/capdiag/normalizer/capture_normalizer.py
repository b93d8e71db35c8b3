"""
Capture normalization.

Turns a raw capture file into a de-duplicated counter table:

1. stage a copy under a collision-free name in the shared work directory
   (source paths may contain characters the decoder cannot handle),
2. run the external decoder with a counter filter, retrying once without it,
3. load the decoder's CSV output with polars, every column as text,
4. merge columns that the legacy and the V2 process namespaces both report,
   keeping the newer namespace's value.

Typed parsing of the values is left to the sample reader.
"""

import logging
import re
import shutil
import tempfile
import uuid
from contextlib import contextmanager
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Dict, Iterator, List, Optional, Sequence, Set, Tuple

import polars as pl

from ..classification import default_counter_filter, parse_counter_path
from ..models.capture import CaptureFile, CounterPath
from ..models.config import DecoderConfig
from ..system.commands import CommandResult, run_command
from ..validation import (
    CaptureImportError,
    ConversionError,
    EmptyCaptureError,
    EmptySampleSetError,
    LockedFileError,
)

logger = logging.getLogger(__name__)

TIMESTAMP_COLUMN = "timestamp"

_UNSAFE_CHARS_RE = re.compile(r"[^A-Za-z0-9_-]+")
_MAX_TOKEN_LENGTH = 40


@dataclass
class NormalizedCapture:
    """
    Decoder output after de-duplication.

    Attributes:
        frame: One row per capture interval. The first column is the raw
            timestamp text, the rest are counter columns, all as strings.
        counters: Classified counter path for every non-timestamp column.
        dedup_hits: Intervals where both namespaces reported the same
            logical counter and the newer one was kept.
        filtered: Whether the counter-filtered decoder attempt succeeded.
    """

    frame: pl.DataFrame
    counters: Dict[str, CounterPath]
    dedup_hits: int = 0
    filtered: bool = True

    @property
    def interval_count(self) -> int:
        return self.frame.height


def safe_token(text: str, max_length: int = _MAX_TOKEN_LENGTH) -> str:
    """Reduce text to characters that are safe in file names."""
    token = _UNSAFE_CHARS_RE.sub("_", text).strip("_")
    return token[:max_length] or "capture"


class CaptureNormalizer:
    """
    Runs the decoder for one capture and returns a de-duplicated table.

    Instances hold no per-capture state, so one normalizer can serve every
    worker thread. Each call works on uniquely named temp files.
    """

    def __init__(
        self,
        decoder_binary: Path,
        decoder_config: Optional[DecoderConfig] = None,
        work_dir: Optional[Path] = None,
        counter_filter: Optional[Sequence[str]] = None,
    ):
        """
        Args:
            decoder_binary: Resolved path of the decoder executable
            decoder_config: Decoder invocation settings
            work_dir: Shared scratch directory; a capdiag folder in the
                system temp dir when None
            counter_filter: Counter paths for the filtered attempt
        """
        self.decoder_binary = Path(decoder_binary)
        self.decoder_config = decoder_config or DecoderConfig()
        self.work_dir = Path(work_dir) if work_dir else Path(tempfile.gettempdir()) / "capdiag"
        self.work_dir.mkdir(parents=True, exist_ok=True)
        self.counter_filter = list(counter_filter) if counter_filter else default_counter_filter()

    # --- Staging ---

    def _unique_path(self, stem: str, suffix: str) -> Path:
        return self.work_dir / f"{safe_token(stem)}_{uuid.uuid4().hex}{suffix}"

    @contextmanager
    def staged_copy(self, capture: CaptureFile) -> Iterator[Path]:
        """
        Copy a capture into the work directory for the duration of the block.

        Raises:
            EmptyCaptureError: If the capture is zero bytes (nothing is copied)
            LockedFileError: If the capture cannot be read
        """
        try:
            size = capture.path.stat().st_size
        except OSError as e:
            raise LockedFileError(
                f"Cannot access capture {capture.relative_path}: {e}", path=str(capture.path)
            ) from e

        if size == 0:
            raise EmptyCaptureError(
                f"Capture {capture.relative_path} is empty (0 bytes)", path=str(capture.path)
            )

        suffix = "." + safe_token(capture.path.suffix.lstrip("."), 10) if capture.path.suffix else ".blg"
        staged = self._unique_path(capture.path.stem, suffix)
        try:
            try:
                shutil.copyfile(capture.path, staged)
            except PermissionError as e:
                raise LockedFileError(
                    f"Capture {capture.relative_path} is locked: {e}", path=str(capture.path)
                ) from e
            except OSError as e:
                raise LockedFileError(
                    f"Cannot copy capture {capture.relative_path}: {e}", path=str(capture.path)
                ) from e
            logger.debug(f"Staged {capture.relative_path} as {staged.name}")
            yield staged
        finally:
            _remove_quietly(staged)

    # --- Decoding ---

    def _build_command(self, input_path: Path, output_path: Path,
                       filter_file: Optional[Path]) -> List[str]:
        args = [str(self.decoder_binary), str(input_path)]
        if filter_file is not None:
            args += ["-cf", str(filter_file)]
        args += ["-f", self.decoder_config.output_format, "-o", str(output_path), "-y"]
        return args

    def _invoke(self, input_path: Path, output_path: Path, use_filter: bool) -> CommandResult:
        filter_file = None
        try:
            if use_filter:
                filter_file = output_path.with_name(output_path.stem + "_counters.txt")
                filter_file.write_text("\n".join(self.counter_filter) + "\n", encoding="utf-8")
            args = self._build_command(input_path, output_path, filter_file)
            return run_command(args, cwd=self.work_dir, timeout=self.decoder_config.timeout_seconds)
        finally:
            if filter_file is not None:
                _remove_quietly(filter_file)

    def normalize(self, staged_path: Path) -> NormalizedCapture:
        """
        Decode a staged capture into a de-duplicated counter table.

        Raises:
            ConversionError: If the filtered and unfiltered attempts both fail
            CaptureImportError: If the decoder output cannot be loaded
            EmptySampleSetError: If the decoder output holds no samples
        """
        extension = ".tsv" if self.decoder_config.output_format == "TSV" else ".csv"
        output_path = self.work_dir / f"{staged_path.stem}_decoded{extension}"

        attempts = [True, False] if self.decoder_config.use_counter_filter else [False]
        last_result: Optional[CommandResult] = None
        try:
            for use_filter in attempts:
                _remove_quietly(output_path)
                result = self._invoke(staged_path, output_path, use_filter)
                last_result = result
                if result.succeeded and _has_content(output_path):
                    frame, counters = self._load(output_path)
                    frame, counters, hits = deduplicate_counters(frame, counters)
                    if hits:
                        logger.debug(f"{staged_path.name}: {hits} samples de-duplicated in favour of the V2 namespace")
                    return NormalizedCapture(
                        frame=frame, counters=counters, dedup_hits=hits, filtered=use_filter
                    )
                mode = "filtered" if use_filter else "unfiltered"
                logger.info(
                    f"{mode.capitalize()} decode of {staged_path.name} failed "
                    f"(exit {result.returncode}, output present: {_has_content(output_path)})"
                )
        finally:
            _remove_quietly(output_path)

        lines = last_result.output_lines() if last_result else []
        diagnostics = "\n".join(lines[: self.decoder_config.diagnostic_lines])
        raise ConversionError(
            f"Decoder failed for {staged_path.name} with and without counter filter",
            path=str(staged_path),
            diagnostics=diagnostics,
        )

    def normalize_capture(self, capture: CaptureFile) -> NormalizedCapture:
        """Stage, decode and de-duplicate one capture."""
        with self.staged_copy(capture) as staged:
            return self.normalize(staged)

    def _load(self, output_path: Path) -> Tuple[pl.DataFrame, Dict[str, CounterPath]]:
        separator = "\t" if self.decoder_config.output_format == "TSV" else ","
        try:
            frame = pl.read_csv(
                output_path,
                separator=separator,
                infer_schema_length=0,
                encoding="utf8-lossy",
                truncate_ragged_lines=True,
            )
        except (pl.exceptions.PolarsError, OSError) as e:
            raise CaptureImportError(
                f"Cannot load decoder output {output_path.name}: {e}", path=str(output_path)
            ) from e

        if frame.width < 2:
            raise CaptureImportError(
                f"Decoder output {output_path.name} has no counter columns",
                path=str(output_path),
            )
        frame = frame.rename({frame.columns[0]: TIMESTAMP_COLUMN})
        if frame.height == 0:
            raise EmptySampleSetError(
                f"Decoder output {output_path.name} holds no samples", path=str(output_path)
            )

        counters = {column: parse_counter_path(column) for column in frame.columns[1:]}
        return frame, counters


def _present(column: str) -> pl.Expr:
    return pl.col(column).is_not_null() & (pl.col(column).str.strip_chars() != "")


def _instance_ordinals(counters: Dict[str, CounterPath]) -> Dict[str, int]:
    """
    Rank of each process column among same-named processes on its host.

    Legacy labels number duplicates ``name``, ``name#1``, ``name#2`` in start
    order. V2 labels carry ``name:pid`` instead, so V2 pids of one name are
    ranked ascending and matched to the legacy index of the same rank.
    """
    pids: Dict[Tuple[str, str], Set[int]] = {}
    for path in counters.values():
        if path.is_process_metric and path.process_id is not None:
            key = ((path.host or "").lower(), path.process_name.lower())
            pids.setdefault(key, set()).add(path.process_id)
    ranks = {key: {pid: i for i, pid in enumerate(sorted(values))} for key, values in pids.items()}

    ordinals: Dict[str, int] = {}
    for column, path in counters.items():
        if not path.is_process_metric:
            continue
        if path.process_id is None:
            ordinals[column] = path.instance_index
        else:
            key = ((path.host or "").lower(), path.process_name.lower())
            ordinals[column] = ranks[key][path.process_id]
    return ordinals


def deduplicate_counters(
    frame: pl.DataFrame, counters: Dict[str, CounterPath]
) -> Tuple[pl.DataFrame, Dict[str, CounterPath], int]:
    """
    Merge process counters reported by both enumeration namespaces.

    Columns sharing a (host, process, rank, metric) key collapse into the
    column of the highest generation. Per interval that column keeps its own
    value when it has one and takes the older column's value otherwise. Ties
    keep the first column.

    Returns:
        The merged frame, the surviving counters and the number of intervals
        where more than one column carried a value. Surviving process
        counters are relabelled ``name`` or ``name#n`` so both namespaces
        group under one instance.
    """
    ordinals = _instance_ordinals(counters)
    groups: Dict[tuple, List[str]] = {}
    for column, ordinal in ordinals.items():
        groups.setdefault(counters[column].logical_key(ordinal), []).append(column)

    hits = 0
    dropped: List[str] = []
    for columns in groups.values():
        if len(columns) < 2:
            continue
        ranked = sorted(columns, key=lambda c: counters[c].generation, reverse=True)
        winner = ranked[0]
        for loser in ranked[1:]:
            hits += int(frame.select((_present(winner) & _present(loser)).sum()).item() or 0)
            frame = frame.with_columns(
                pl.when(_present(winner))
                .then(pl.col(winner))
                .otherwise(pl.col(loser))
                .alias(winner)
            )
            dropped.append(loser)

    if dropped:
        frame = frame.drop(dropped)
    counters = {
        column: _relabel(path, ordinals[column]) if column in ordinals else path
        for column, path in counters.items()
        if column not in dropped
    }
    return frame, counters, hits


def _relabel(path: CounterPath, ordinal: int) -> CounterPath:
    """Give a process counter the legacy-style label ``name`` or ``name#n``."""
    label = path.process_name if ordinal == 0 else f"{path.process_name}#{ordinal}"
    return path if label == path.instance else replace(path, instance=label)


def _has_content(path: Path) -> bool:
    try:
        return path.is_file() and path.stat().st_size > 0
    except OSError:
        return False


def _remove_quietly(path: Path) -> None:
    try:
        path.unlink(missing_ok=True)
    except OSError as e:
        logger.warning(f"Failed to remove temp file {path}: {e}")
