"""
Batch Pipeline - Orchestrates discovery, transforms, labeling and the manifest.

Supports:
- Parallel per-file processing with num_workers
- Per-file failure isolation (bad files are reported and skipped)
- Stable class indices seeded from a previous manifest
- Cooperative cancellation
"""

import logging
import os
import threading
import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional, Tuple

from ..config import PipelineConfig
from .codec import read_image, write_image
from .discovery import has_extension, iter_files
from .labels import LabelRegistry
from .manifest import MANIFEST_FILENAME, ManifestRecord, read_manifest, write_manifest
from .transforms import BaseTransform, apply_transforms, build_transforms

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FileFailure:
    """A file that was skipped because one of its steps failed."""
    path: str
    stage: str  # label, decode, transform or write
    error: str


@dataclass(frozen=True)
class FileOutcome:
    """What a worker reports back for a single input file."""
    input_path: Path
    output_path: Path
    failure: Optional[FileFailure] = None
    cancelled: bool = False


@dataclass
class RunResult:
    """Result from a pipeline run."""
    records: List[ManifestRecord] = field(default_factory=list)
    failures: List[FileFailure] = field(default_factory=list)
    processed: int = 0
    skipped: int = 0  # not started because the run was cancelled
    duration: float = 0.0  # seconds
    cancelled: bool = False
    label_map: Dict[str, int] = field(default_factory=dict)
    manifest_path: Optional[Path] = None

    @property
    def average_seconds_per_file(self) -> float:
        if self.processed == 0:
            return 0.0
        return self.duration / self.processed

    def summary(self) -> str:
        lines = [
            f"Processed {self.processed} images in {self.duration:.3f}s",
            f"Average time per image: {self.average_seconds_per_file:.6f} seconds",
        ]
        if self.failures:
            lines.append(f"Failed: {len(self.failures)} files")
        if self.cancelled:
            lines.append(f"Cancelled: {self.skipped} files not processed")
        return "\n".join(lines)


def _printable(path: Path) -> str:
    """``path`` as text, with bytes that are not valid UTF-8 replaced."""
    return os.fsencode(path).decode("utf-8", "replace")


def _check_encodable(input_path: Path, output_path: Path) -> None:
    """
    Raise UnicodeEncodeError if the label or output path cannot go into the manifest.

    Undecodable bytes in file names come back from the OS as lone surrogates,
    which UTF-8 JSON cannot hold.
    """
    input_path.parent.name.encode("utf-8")
    str(output_path).encode("utf-8")


class BatchPipeline:
    """
    Transform every image under an input tree and label it by parent directory.

    Workers decode, transform and write files in a thread pool and hand back
    a FileOutcome. The thread calling ``run()`` is the only one that touches
    the label registry and the result, consuming outcomes in input order.

    Example:
        config = PipelineConfig(
            input_dir="raw/",
            output_dir="prepared/",
            transform=TransformConfig(resize=parse_resize("50%")),
        )
        result = BatchPipeline(config).run()
        print(result.summary())
    """

    def __init__(self, config: PipelineConfig, registry: Optional[LabelRegistry] = None):
        """
        Initialize pipeline.

        Args:
            config: Run configuration.
            registry: Label registry to use. When omitted, one is built at the
                start of ``run()`` from the prior manifest, if any.
        """
        self.config = config
        self.registry = registry
        self._cancel_event = threading.Event()
        self._transforms: List[BaseTransform] = []

    def cancel(self) -> None:
        """Stop starting new files. In-flight files finish and are recorded."""
        if not self._cancel_event.is_set():
            logger.warning("Cancellation requested, finishing in-flight files")
        self._cancel_event.set()

    @property
    def cancelled(self) -> bool:
        return self._cancel_event.is_set()

    def _prepare_roots(self) -> Tuple[Path, Path]:
        """Validate the input root and create the output root."""
        input_root = Path(self.config.input_dir)
        if not input_root.exists():
            raise FileNotFoundError(f"Input directory does not exist: {input_root}")
        if not input_root.is_dir():
            raise NotADirectoryError(f"Input path is not a directory: {input_root}")

        output_root = Path(self.config.output_dir)
        if output_root.resolve() == input_root.resolve():
            raise ValueError(f"Output directory must differ from the input directory: {input_root}")
        try:
            self.config.dataset_name.encode("utf-8")
        except UnicodeEncodeError as e:
            raise ValueError(
                f"Output directory name is not valid UTF-8: {_printable(output_root)}"
            ) from e
        output_root.mkdir(parents=True, exist_ok=True)
        return input_root, output_root

    def resolve_prior_manifest(self, input_root: Path, output_root: Path) -> Optional[Path]:
        """
        Locate the manifest used to seed class indices.

        An explicit ``prior_manifest`` must exist. Otherwise the output root's
        manifest is used, then one left in the input root.
        """
        if self.config.prior_manifest:
            path = Path(self.config.prior_manifest)
            if not path.is_file():
                raise FileNotFoundError(f"Prior manifest does not exist: {path}")
            return path

        for candidate in (output_root / MANIFEST_FILENAME, input_root / MANIFEST_FILENAME):
            if candidate.is_file():
                return candidate
        return None

    def load_registry(self, input_root: Path, output_root: Path) -> LabelRegistry:
        manifest_path = self.resolve_prior_manifest(input_root, output_root)
        if manifest_path is None:
            return LabelRegistry()
        registry = LabelRegistry.from_records(read_manifest(manifest_path))
        logger.info(f"Seeded {len(registry)} labels from {manifest_path}")
        return registry

    def discover(self, input_root: Path, output_root: Path) -> List[Path]:
        """Eligible image files under ``input_root``, sorted, excluding the output tree."""
        resolved_output = output_root.resolve()
        files = []
        for path in iter_files(input_root):
            if not has_extension(path, self.config.extensions):
                continue
            if resolved_output in path.resolve().parents:
                continue
            files.append(path)
        files.sort()
        logger.info(f"Found {len(files)} image files in {input_root}")
        return files

    def plan_outputs(
        self, files: List[Path], input_root: Path, output_root: Path
    ) -> List[Tuple[Path, Path]]:
        """
        Map each input file to its output path.

        The relative directory is mirrored. The stem is kept or replaced with
        the file's position in ``files``, and the extension is kept or forced
        to the output format. Clashing outputs get a numeric suffix.
        """
        plan = []
        used = set()
        for position, path in enumerate(files):
            relative = path.relative_to(input_root)
            suffix = path.suffix if self.config.preserve_formats else f".{self.config.output_format}"
            stem = path.stem if self.config.preserve_filenames else str(position)
            target = output_root / relative.parent / f"{stem}{suffix}"

            n = 1
            while target in used:
                target = output_root / relative.parent / f"{stem}_{n}{suffix}"
                n += 1
            used.add(target)
            plan.append((path, target))
        return plan

    def _process_single(self, input_path: Path, output_path: Path) -> FileOutcome:
        """Decode, transform and write one file. Never raises."""
        if self._cancel_event.is_set():
            return FileOutcome(input_path, output_path, cancelled=True)

        stage = "label"
        try:
            _check_encodable(input_path, output_path)
            stage = "decode"
            image = read_image(input_path)
            stage = "transform"
            image = apply_transforms(image, self._transforms)
            stage = "write"
            output_path.parent.mkdir(parents=True, exist_ok=True)
            write_image(image, output_path, self.config.quality)
        except Exception as e:
            shown = _printable(input_path)
            if stage == "label":
                e = ValueError(f"Label or output path is not valid UTF-8: {shown}")
            logger.warning(f"Failed to {stage} {shown}: {e}")
            return FileOutcome(input_path, output_path, failure=FileFailure(shown, stage, str(e)))

        logger.debug(f"Saved image to {output_path}")
        return FileOutcome(input_path, output_path)

    def _collect(self, outcome: FileOutcome, result: RunResult, registry: LabelRegistry) -> None:
        """Fold one outcome into the result. Only called from the coordinating thread."""
        if outcome.cancelled:
            result.skipped += 1
            return
        if outcome.failure is not None:
            result.failures.append(outcome.failure)
            return

        label = outcome.input_path.parent.name
        result.records.append(
            ManifestRecord(
                class_index=registry.get_or_assign(label),
                filepaths=str(outcome.output_path),
                labels=label,
                dataset=self.config.dataset_name,
            )
        )
        result.processed += 1

    def run(self) -> RunResult:
        """
        Run the full pipeline and write the manifest.

        Returns:
            RunResult with records, failures and timing.

        Raises:
            FileNotFoundError: If the input root or an explicit prior manifest is missing.
            NotADirectoryError: If the input root is not a directory.
            OSError: If the output root cannot be created.
            ValueError: If the output root is the input root, its name is not
                valid UTF-8, or the prior manifest is malformed.
        """
        start = time.perf_counter()
        input_root, output_root = self._prepare_roots()
        # Labels of files directly under the input root come from its real name
        input_root = input_root.resolve()

        registry = self.registry
        if registry is None:
            registry = self.load_registry(input_root, output_root)

        self._transforms = build_transforms(self.config.transform)
        plan = self.plan_outputs(self.discover(input_root, output_root), input_root, output_root)
        result = RunResult()

        logger.info(f"Processing directory: {input_root}")
        if self.config.workers > 1 and len(plan) > 1:
            with ThreadPoolExecutor(max_workers=self.config.workers) as executor:
                futures = [
                    executor.submit(self._process_single, src, dst) for src, dst in plan
                ]
                for future in futures:
                    self._collect(future.result(), result, registry)
        else:
            for src, dst in plan:
                self._collect(self._process_single(src, dst), result, registry)

        result.duration = time.perf_counter() - start
        result.cancelled = self.cancelled
        result.label_map = registry.snapshot()
        result.manifest_path = write_manifest(result.records, output_root / MANIFEST_FILENAME)

        if result.processed == 0:
            logger.warning(f"No images were processed from {input_root}")
        logger.info(f"Processed {result.processed} images in {result.duration:.3f}s")
        logger.info(f"Average time per image: {result.average_seconds_per_file:.6f} seconds")
        if result.failures:
            logger.warning(f"{len(result.failures)} files failed and were left out of the manifest")
        return result
