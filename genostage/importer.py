# File: genostage/importer.py
# Location: genostage/genostage/importer.py

"""
File import module.

Turns provider deliveries into staging files: resolve the payload inside
its archive, build a DataMatrix (optionally pruned by a correlate table),
and hand it to the StagingWriter. Mutation data additionally goes through
the annotation pipeline.

A failure affects only the file it happened on; ``stage_records`` logs it
and continues with the next record.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional, Tuple

from .annotation import AnnotationPipeline
from .archive import resolve
from .constants import CORRELATE_METH_PROBE_COLUMN_HEADER, VALUE_DELIMITER
from .matrix import DataMatrix, build_correlation_set, build_data_matrix
from .pipeline_core.error_handling import PipelineError
from .staging import CancerStudyMetadata, DatatypeMetadata, StagingWriter

logger = logging.getLogger("genostage")


@dataclass
class ImportDataRecord:
    """One downloaded source file and where its data should be staged."""

    canonical_path_to_data: str
    data_filename: str
    study: CancerStudyMetadata
    datatype: DatatypeMetadata
    tumor_type_label: Optional[str] = None
    is_mutation: bool = False
    correlate: Optional["ImportDataRecord"] = None

    def __str__(self) -> str:
        return f"{self.study}:{self.datatype.datatype}:{self.canonical_path_to_data}"


@dataclass
class ImportSummary:
    """Records staged, records without data, and records that failed."""

    staged: List[ImportDataRecord] = field(default_factory=list)
    empty: List[ImportDataRecord] = field(default_factory=list)
    failed: List[Tuple[ImportDataRecord, str]] = field(default_factory=list)


class FileImporter:
    """
    Resolve, parse and stage import records.

    Parameters
    ----------
    cfg : dict
        Configuration (see config.json).
    writer : StagingWriter
        Destination of staging files.
    pipeline : AnnotationPipeline, optional
        Required to stage mutation records.
    """

    def __init__(
        self,
        cfg: Dict[str, Any],
        writer: StagingWriter,
        pipeline: Optional[AnnotationPipeline] = None,
    ):
        self.writer = writer
        self.pipeline = pipeline
        self.delimiter = cfg.get("value_delimiter", VALUE_DELIMITER)
        self.malformed_rows = cfg.get("malformed_rows", "pad")
        self.detect_by_content = cfg.get("detect_compression_by_content", False)
        self.correlation_column = cfg.get(
            "correlation_probe_column", CORRELATE_METH_PROBE_COLUMN_HEADER
        )

    def get_file_contents(
        self, record: ImportDataRecord, correlation_matrix: Optional[DataMatrix] = None
    ) -> Optional[DataMatrix]:
        """
        Build the DataMatrix for a record.

        Parameters
        ----------
        record : ImportDataRecord
        correlation_matrix : DataMatrix, optional
            Companion table whose probe column restricts the rows kept.

        Returns
        -------
        DataMatrix or None
            None when the source holds no usable data.

        Raises
        ------
        UnreadableSourceError
            If the source or its archive cannot be read.
        """
        logger.info(f"Getting file contents: {record}")
        correlation = build_correlation_set(correlation_matrix, self.correlation_column)

        stream = resolve(
            record.canonical_path_to_data,
            record.data_filename,
            tumor_type_label=record.tumor_type_label,
            detect_by_content=self.detect_by_content,
        )
        if stream is None:
            return None

        with stream:
            return build_data_matrix(
                stream,
                correlation=correlation,
                delimiter=self.delimiter,
                malformed_rows=self.malformed_rows,
            )

    def stage_record(self, record: ImportDataRecord) -> bool:
        """
        Stage one record.

        Returns
        -------
        bool
            True if a staging file was written, False if there was no data.
        """
        correlation_matrix = None
        if record.correlate is not None:
            correlation_matrix = self.get_file_contents(record.correlate)
            if correlation_matrix is None:
                logger.warning(
                    f"Correlate file for {record} has no data, rows will not be filtered"
                )

        matrix = self.get_file_contents(record, correlation_matrix)
        if matrix is None:
            logger.warning(f"No data found in {record}, nothing staged")
            return False

        if record.is_mutation:
            if self.pipeline is None:
                raise PipelineError(
                    f"Mutation record {record} needs an annotation pipeline", stage="stage"
                )
            self.writer.write_mutation_staging_file(
                record.study, record.datatype, matrix, self.pipeline
            )
        else:
            self.writer.write_staging_file(record.study, record.datatype, matrix)
        return True

    def stage_records(self, records: Iterable[ImportDataRecord]) -> ImportSummary:
        """
        Stage every record, isolating failures to the record they hit.

        Returns
        -------
        ImportSummary
        """
        summary = ImportSummary()
        for record in records:
            try:
                staged = self.stage_record(record)
            except (PipelineError, OSError, ValueError) as e:
                logger.error(f"Skipping {record}: {e}")
                summary.failed.append((record, str(e)))
                continue
            if staged:
                summary.staged.append(record)
            else:
                summary.empty.append(record)

        logger.info(
            f"Import finished: {len(summary.staged)} staged, {len(summary.empty)} without data, "
            f"{len(summary.failed)} failed"
        )
        return summary
