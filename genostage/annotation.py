# File: genostage/annotation.py
# Location: genostage/genostage/annotation.py

"""
Mutation annotation pipeline module.

Runs one mutation (MAF) table through the external tools in a fixed order:

1. detect the genome build from the first data row,
2. lift coordinates over to the newer build when the row names the older one,
3. add functional annotation columns,
4. add pathogenicity scores, writing the caller's final output file.

Intermediate files live in a per-run Workspace and are removed on success
and on failure. A failing stage stops the run; nothing is retried. The
final output is never left half-written: a file the run created is removed,
and a file that existed before the run is restored.
"""

import logging
import os
import shutil
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Dict, List, Optional, Union

from .constants import (
    MAF_FILE_EXT,
    NCBI_BUILD_COLUMN_HEADERS,
    NCBI_BUILD_COLUMN_INDEX,
    OLD_BUILD_NAMED_ALIASES,
    OLD_BUILD_NUMERIC_ALIAS,
    VALUE_DELIMITER,
)
from .pipeline_core.error_handling import (
    AnnotationPipelineError,
    FileFormatError,
    UnreadableSourceError,
)
from .pipeline_core.workspace import Workspace
from .tools import AnnotatorTool, ExternalTool, LiftoverTool, ScorerTool, ToolSettings
from .utils import to_local_path

logger = logging.getLogger("genostage")


class PipelineState(Enum):
    """States a single annotation run moves through."""

    START = "start"
    BUILD_DETECTED = "build_detected"
    LIFTOVER_DONE = "liftover_done"
    ANNOTATED = "annotated"
    SCORED = "scored"
    DONE = "done"
    FAILED = "failed"


@dataclass
class AnnotationResult:
    """Outcome of a successful annotation run."""

    output_path: Path
    build_token: str
    lifted_over: bool
    states: List[PipelineState] = field(default_factory=list)


def is_old_build(build_token: str) -> bool:
    """
    Return True if a build token names the older genome build.

    Numeric aliases match as a substring (``"36"``, ``"36.1"``); named
    aliases must match the whole token, ignoring case.
    """
    token = build_token.strip()
    return OLD_BUILD_NUMERIC_ALIAS in token or token.lower() in OLD_BUILD_NAMED_ALIASES


def detect_build(input_path: Union[str, os.PathLike], delimiter: str = VALUE_DELIMITER) -> str:
    """
    Read the genome build token from the first data row of a mutation table.

    Parameters
    ----------
    input_path : str or PathLike
        Mutation table with a header line.
    delimiter : str
        Field delimiter.

    Returns
    -------
    str
        The token at the build column of the first data row.

    Raises
    ------
    UnreadableSourceError
        If the file cannot be read.
    FileFormatError
        If there is no data row or it is too short to hold a build token.
    """
    path = str(input_path)
    try:
        with open(path, "r", encoding="utf-8") as f:
            header = f.readline()
            first_row = f.readline()
    except (OSError, UnicodeDecodeError) as e:
        raise UnreadableSourceError(path, str(e), stage="detect_build")

    if not first_row:
        raise FileFormatError(path, "mutation table with at least one data row", "detect_build")

    build_index = build_column_index(header.rstrip("\r\n").split(delimiter))
    parts = first_row.rstrip("\r\n").split(delimiter)
    if len(parts) <= build_index:
        raise FileFormatError(
            path,
            f"build token in column {build_index + 1} of the first data row",
            "detect_build",
        )
    return parts[build_index]


def build_column_index(header: List[str]) -> int:
    """
    Return the column holding the genome build token.

    A header field named ``NCBI_Build`` or ``Build`` (any case) wins;
    otherwise the fixed MAF position is used.
    """
    for index, name in enumerate(header):
        if name.strip().lower() in NCBI_BUILD_COLUMN_HEADERS:
            return index
    return NCBI_BUILD_COLUMN_INDEX


class AnnotationPipeline:
    """
    Build-detect, liftover, annotate and score one mutation file at a time.

    The pipeline keeps no per-run state on the instance, so one instance can
    serve several threads as long as every run targets a distinct output.

    Parameters
    ----------
    settings : ToolSettings, optional
        Tool locations used to build the command-line tools.
    liftover, annotator, scorer : ExternalTool, optional
        Replace the command-line tools, e.g. with fakes in tests.
    temp_dir : str or Path, optional
        Where intermediate artifacts are written (default: system temp).
    delimiter : str
        Field delimiter of the mutation tables.
    """

    def __init__(
        self,
        settings: Optional[ToolSettings] = None,
        liftover: Optional[ExternalTool] = None,
        annotator: Optional[ExternalTool] = None,
        scorer: Optional[ExternalTool] = None,
        temp_dir: Optional[Union[str, Path]] = None,
        delimiter: str = VALUE_DELIMITER,
    ):
        self.settings = settings or ToolSettings()
        self.liftover = liftover or LiftoverTool(self.settings)
        self.annotator = annotator or AnnotatorTool(self.settings)
        self.scorer = scorer or ScorerTool(self.settings)
        self.temp_dir = Path(temp_dir) if temp_dir else None
        self.delimiter = delimiter

    def run(
        self,
        input_location: Union[str, os.PathLike],
        output_location: Union[str, os.PathLike],
        input_is_temporary: bool = False,
    ) -> AnnotationResult:
        """
        Run a mutation file through all annotation stages.

        Parameters
        ----------
        input_location : str or PathLike
            Path or ``file://`` URL of the mutation table. If liftover is
            needed, the lifted table is written back to this path.
        output_location : str or PathLike
            Path or ``file://`` URL of the final annotated table.
        input_is_temporary : bool
            The input is a synthesized dump owned by the caller's run and
            is deleted once the pipeline finishes.

        Returns
        -------
        AnnotationResult

        Raises
        ------
        AnnotationPipelineError
            If any stage fails. Temporary artifacts are already removed.
        """
        if not input_location or not output_location:
            raise ValueError("Both an input and an output location are required")

        input_path = Path(to_local_path(input_location))
        output_path = Path(to_local_path(output_location))
        if input_path == output_path:
            raise ValueError(f"Input and output must differ: {input_path}")

        states = [PipelineState.START]
        step = "workspace"
        workspace = None
        logger.info(f"Annotating mutation file {input_path} -> {output_path}")

        try:
            workspace = Workspace(self.temp_dir)
            step = "detect_build"
            build_token = detect_build(input_path, self.delimiter)
            states.append(PipelineState.BUILD_DETECTED)
            lifted_over = is_old_build(build_token)
            logger.info(f"Detected genome build token '{build_token}'")

            if lifted_over:
                step = "liftover"
                self._run_liftover(workspace, input_path)
                states.append(PipelineState.LIFTOVER_DONE)
            else:
                logger.info("Input is on the current build, skipping liftover")

            step = "annotate"
            annotated_path = workspace.new_artifact(".annotatorOutputFile")
            self.annotator.run(str(input_path), str(annotated_path))
            states.append(PipelineState.ANNOTATED)

            step = "score"
            self._run_scorer(workspace, annotated_path, output_path)
            states.append(PipelineState.SCORED)
        except Exception as e:
            states.append(PipelineState.FAILED)
            logger.error(f"Annotation of {input_path} failed during '{step}': {e}")
            if workspace is not None:
                workspace.cleanup()
            if input_is_temporary:
                self._remove_quietly(input_path)
            error = AnnotationPipelineError(step, e)
            error.details["states"] = [s.value for s in states]
            raise error from e

        workspace.cleanup()
        if input_is_temporary:
            self._remove_quietly(input_path)
        states.append(PipelineState.DONE)
        logger.info(f"Annotation finished: {output_path}")

        return AnnotationResult(
            output_path=output_path,
            build_token=build_token,
            lifted_over=lifted_over,
            states=states,
        )

    def _run_liftover(self, workspace: Workspace, input_path: Path) -> None:
        liftover_input = workspace.new_artifact(".liftoverInputFile")
        shutil.copyfile(input_path, liftover_input)
        try:
            self.liftover.run(str(liftover_input), str(input_path))
        except Exception:
            # the tool may have rewritten the input partially
            shutil.copyfile(liftover_input, input_path)
            raise
        finally:
            workspace.discard(liftover_input)

    def _run_scorer(self, workspace: Workspace, annotated_path: Path, output_path: Path) -> None:
        output_path.parent.mkdir(parents=True, exist_ok=True)
        backup: Optional[Path] = None
        if output_path.exists():
            backup = workspace.new_artifact(".outputBackup")
            shutil.copyfile(output_path, backup)
        else:
            output_path.touch()

        try:
            self.scorer.run(str(annotated_path), str(output_path))
        except Exception:
            if backup is not None:
                shutil.copyfile(backup, output_path)
                logger.info(f"Restored previous output {output_path}")
            else:
                self._remove_quietly(output_path)
            raise
        finally:
            workspace.discard(annotated_path)
            if backup is not None:
                workspace.discard(backup)

    @staticmethod
    def _remove_quietly(path: Path) -> None:
        try:
            if path.exists():
                path.unlink()
        except OSError as e:
            logger.warning(f"Could not remove {path}: {e}")


@dataclass
class DirectoryAnnotationSummary:
    """Files annotated in place by annotate_directory, and those that failed."""

    annotated: List[Path] = field(default_factory=list)
    failed: Dict[Path, str] = field(default_factory=dict)


def annotate_directory(
    download_dir: Union[str, os.PathLike],
    pipeline: AnnotationPipeline,
    temp_dir: Optional[Union[str, Path]] = None,
) -> DirectoryAnnotationSummary:
    """
    Annotate every MAF below a directory in place.

    Each MAF is copied to a temporary input which the pipeline consumes; the
    MAF itself receives the annotated result. A failing file is logged and
    skipped, and the walk continues.

    Parameters
    ----------
    download_dir : str or PathLike
        Directory searched recursively for ``*.maf`` files.
    pipeline : AnnotationPipeline
        Pipeline used for every file.
    temp_dir : str or Path, optional
        Where the temporary input copies are written.

    Returns
    -------
    DirectoryAnnotationSummary
    """
    root = Path(to_local_path(download_dir))
    summary = DirectoryAnnotationSummary()
    maf_files = sorted(root.rglob(f"*.{MAF_FILE_EXT}"))
    logger.info(f"Found {len(maf_files)} MAF file(s) under {root}")

    for maf in maf_files:
        try:
            with Workspace(temp_dir or pipeline.temp_dir) as workspace:
                input_copy = workspace.new_artifact(".annotatorInputFile")
                shutil.copyfile(maf, input_copy)
                pipeline.run(input_copy, maf, input_is_temporary=True)
        except (OSError, AnnotationPipelineError) as e:
            logger.error(f"Skipping {maf}: {e}")
            summary.failed[maf] = str(e)
            continue
        summary.annotated.append(maf)

    logger.info(
        f"Annotated {len(summary.annotated)} MAF file(s), {len(summary.failed)} failed"
    )
    return summary
