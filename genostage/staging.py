# File: genostage/staging.py
# Location: genostage/genostage/staging.py

"""
Staging file module.

Writes the normalized artifacts a downstream loader consumes: staging
tables, their metadata descriptors, study descriptors and case lists.
Mutation tables are routed through the annotation pipeline on their way to
the staging area. Provider overrides can replace a staging file wholesale.
"""

import logging
import shutil
import tempfile
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Iterable, List, Optional, Union

from jinja2 import Environment, FileSystemLoader

from .annotation import AnnotationPipeline
from .constants import (
    CANCER_STUDY_TAG,
    CASE_LISTS_DIRECTORY,
    MUTATION_CASE_ID_COLUMN_HEADER,
    NUM_CASES_TAG,
    NUM_GENES_TAG,
    TUMOR_TYPE_NAME_TAG,
    TUMOR_TYPE_TAG,
    VALUE_DELIMITER,
)
from .matrix import DataMatrix, split_line
from .pipeline_core.workspace import Workspace
from .utils import sanitize_metadata_field

logger = logging.getLogger("genostage")

TEMPLATES_DIR = Path(__file__).parent / "templates"


@dataclass
class CancerStudyMetadata:
    """The parts of a cancer study description the staging area needs."""

    study_id: str
    study_path: str
    tumor_type: str
    tumor_type_name: str = ""
    name: str = ""
    description: str = ""
    citation: str = ""
    pmid: str = ""

    def __str__(self) -> str:
        return self.study_id


@dataclass
class DatatypeMetadata:
    """Staging filename and descriptor fields of one datatype."""

    datatype: str
    staging_filename: str
    meta_filename: str = ""
    genetic_alteration_type: str = ""
    stable_id: str = ""
    show_profile_in_analysis_tab: bool = False
    profile_description: str = ""
    profile_name: str = ""

    @property
    def requires_metafile(self) -> bool:
        return bool(self.meta_filename)


@dataclass
class CaseListMetadata:
    """Descriptor fields of one case list."""

    case_list_filename: str
    stable_id: str
    case_list_name: str
    case_list_description: str
    case_list_category: str


def count_cases(matrix: DataMatrix) -> int:
    """
    Count the cases described by a staging matrix.

    Mutation tables list one case per distinct value of the case id column.
    Other tables hold one case per column after the leading identifier
    column.
    """
    if MUTATION_CASE_ID_COLUMN_HEADER in matrix.column_names:
        return len(set(matrix.get_column_data(MUTATION_CASE_ID_COLUMN_HEADER)))
    return max(matrix.num_columns - 1, 0)


def create_tmp_file_with_contents(
    filename: str, file_content: str, temp_dir: Optional[Union[str, Path]] = None
) -> Path:
    """Write a file with the given name and contents into the temp directory."""
    directory = Path(temp_dir) if temp_dir else Path(tempfile.gettempdir())
    return create_file_with_contents(directory / filename, file_content)


def create_file_with_contents(filename: Union[str, Path], file_content: str) -> Path:
    """Create (or overwrite) a file with the given contents."""
    path = Path(filename)
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        f.write(file_content)
    return path


class StagingWriter:
    """
    Writes staging files for one portal's staging directory.

    Parameters
    ----------
    staging_dir : str or Path
        Root of the staging area; every study has a subdirectory.
    delimiter : str
        Field delimiter of staging tables.
    temp_dir : str or Path, optional
        Where synthesized temporary inputs are written.
    """

    def __init__(
        self,
        staging_dir: Union[str, Path],
        delimiter: str = VALUE_DELIMITER,
        temp_dir: Optional[Union[str, Path]] = None,
    ):
        self.staging_dir = Path(staging_dir)
        self.delimiter = delimiter
        self.temp_dir = Path(temp_dir) if temp_dir else None
        self._env = Environment(
            loader=FileSystemLoader(str(TEMPLATES_DIR)), keep_trailing_newline=True
        )

    def study_dir(self, study: CancerStudyMetadata) -> Path:
        return self.staging_dir / study.study_path

    def staging_path(self, study: CancerStudyMetadata, datatype: DatatypeMetadata) -> Path:
        """Return the staging file path, with the study id substituted in."""
        filename = datatype.staging_filename.replace(CANCER_STUDY_TAG, str(study))
        return self.study_dir(study) / filename

    def write_staging_file(
        self, study: CancerStudyMetadata, datatype: DatatypeMetadata, matrix: DataMatrix
    ) -> Path:
        """
        Write a DataMatrix as a staging file, plus its descriptor if required.

        Returns
        -------
        Path
            The staging file.
        """
        staging_file = self.staging_path(study, datatype)
        logger.info(f"Writing staging file: {staging_file}")
        staging_file.parent.mkdir(parents=True, exist_ok=True)
        with open(staging_file, "w", encoding="utf-8") as out:
            matrix.write(out, self.delimiter)

        if datatype.requires_metafile:
            logger.info(f"Creating metadata file for staging file: {staging_file}")
            self.write_metadata_file(study, datatype, matrix)
        return staging_file

    def write_mutation_staging_file(
        self,
        study: CancerStudyMetadata,
        datatype: DatatypeMetadata,
        matrix: DataMatrix,
        pipeline: AnnotationPipeline,
    ) -> Path:
        """
        Annotate a mutation DataMatrix into its staging file.

        The matrix is dumped to a temporary input which the annotation
        pipeline consumes; the pipeline writes the staging file itself.

        Raises
        ------
        AnnotationPipelineError
            If annotation fails. The staging file is left as it was and no
            descriptor is written.
        """
        staging_file = self.staging_path(study, datatype)
        staging_file.parent.mkdir(parents=True, exist_ok=True)

        with Workspace(self.temp_dir) as workspace:
            annotator_input = workspace.new_artifact(".annotatorInputFile")
            with open(annotator_input, "w", encoding="utf-8") as out:
                matrix.write(out, self.delimiter)
            pipeline.run(annotator_input, staging_file, input_is_temporary=True)

        if datatype.requires_metafile:
            logger.info(f"Creating metadata file for mutation staging file: {staging_file}")
            self.write_metadata_file(study, datatype, matrix)
        return staging_file

    def write_metadata_file(
        self,
        study: CancerStudyMetadata,
        datatype: DatatypeMetadata,
        matrix: Optional[DataMatrix] = None,
    ) -> Path:
        """
        Write the descriptor of a datatype's staging file.

        Count tags in the profile description are only filled in when a
        matrix is given.
        """
        meta_file = self.study_dir(study) / datatype.meta_filename
        logger.info(f"Writing metadata file: {meta_file}")

        description = datatype.profile_description
        if matrix is not None:
            description = description.replace(NUM_GENES_TAG, str(matrix.num_rows))
            description = description.replace(NUM_CASES_TAG, str(count_cases(matrix)))
        description = description.replace(TUMOR_TYPE_TAG, study.tumor_type)

        content = self._env.get_template("meta_datatype.txt.j2").render(
            cancer_study_identifier=str(study),
            genetic_alteration_type=datatype.genetic_alteration_type,
            stable_id=datatype.stable_id.replace(CANCER_STUDY_TAG, str(study)),
            show_profile_in_analysis_tab=str(datatype.show_profile_in_analysis_tab).lower(),
            profile_description=sanitize_metadata_field(description),
            profile_name=datatype.profile_name,
        )
        return create_file_with_contents(meta_file, content)

    def write_cancer_study_metadata_file(
        self, study: CancerStudyMetadata, meta_filename: str, num_cases: int
    ) -> Path:
        """Write the study-level descriptor."""
        meta_file = self.study_dir(study) / meta_filename
        logger.info(f"Writing cancer study metadata file: {meta_file}")

        name = study.name or study.tumor_type_name
        name = name.replace(TUMOR_TYPE_NAME_TAG, study.tumor_type_name)
        description = (
            study.description.replace(NUM_CASES_TAG, str(num_cases))
            .replace(TUMOR_TYPE_TAG, study.tumor_type)
            .replace(TUMOR_TYPE_NAME_TAG, study.tumor_type_name)
        )

        content = self._env.get_template("meta_study.txt.j2").render(
            type_of_cancer=study.tumor_type,
            cancer_study_identifier=str(study),
            name=name,
            description=sanitize_metadata_field(description),
            citation=study.citation,
            pmid=study.pmid,
        )
        return create_file_with_contents(meta_file, content)

    def write_case_list_file(
        self,
        study: CancerStudyMetadata,
        case_list: CaseListMetadata,
        case_ids: Iterable[str],
    ) -> Path:
        """Write a case list file into the study's case list directory."""
        case_ids = list(case_ids)
        case_list_file = (
            self.study_dir(study) / CASE_LISTS_DIRECTORY / case_list.case_list_filename
        )
        logger.info(f"Writing case list file: {case_list_file}")

        content = self._env.get_template("case_list.txt.j2").render(
            cancer_study_identifier=str(study),
            stable_id=case_list.stable_id.replace(CANCER_STUDY_TAG, str(study)),
            case_list_name=case_list.case_list_name,
            case_list_description=case_list.case_list_description.replace(
                NUM_CASES_TAG, str(len(case_ids))
            ),
            case_list_category=case_list.case_list_category,
            case_ids=case_ids,
            delimiter=self.delimiter,
        )
        return create_file_with_contents(case_list_file, content)

    def get_case_list_from_staging_file(
        self,
        study: CancerStudyMetadata,
        staging_filename: str,
        is_tumor_case_id: Callable[[str], bool],
        convert_case_id: Callable[[str], str],
    ) -> List[str]:
        """
        Collect the tumor case ids found in a staging file.

        Mutation tables are read row by row from the case id column; other
        tables carry their case ids in the header.

        Parameters
        ----------
        study : CancerStudyMetadata
        staging_filename : str
            Staging file name inside the study directory.
        is_tumor_case_id : callable
            Decides whether a value is a tumor case id.
        convert_case_id : callable
            Maps a raw id to its portal form.

        Returns
        -------
        list of str
            Sorted unique converted ids; empty if the file does not exist.
        """
        staging_file = self.study_dir(study) / staging_filename
        logger.info(f"Getting case list from staging file: {staging_file}")
        if not staging_file.exists():
            return []

        case_set = set()
        with open(staging_file, "r", encoding="utf-8") as f:
            header = split_line(f.readline(), self.delimiter)
            if MUTATION_CASE_ID_COLUMN_HEADER not in header:
                candidates = header
            else:
                index = header.index(MUTATION_CASE_ID_COLUMN_HEADER)
                candidates = (
                    fields[index]
                    for fields in (split_line(line, self.delimiter) for line in f)
                    if index < len(fields)
                )
            for potential_case_id in candidates:
                if is_tumor_case_id(potential_case_id):
                    case_set.add(convert_case_id(potential_case_id))

        return sorted(case_set)

    def get_override_file(
        self, override_dir: Union[str, Path], study: CancerStudyMetadata, filename: str
    ) -> Optional[Path]:
        """Return the override file for a study, or None if there is none."""
        override_file = Path(override_dir) / study.study_path / filename
        return override_file if override_file.exists() else None

    def apply_override(
        self,
        override_dir: Union[str, Path],
        study: CancerStudyMetadata,
        override_filename: str,
        staging_filename: str,
    ) -> Optional[Path]:
        """
        Copy an override file or directory over a staging file, if it exists.

        Returns
        -------
        Path or None
            The staging path written, or None if there was no override.
        """
        override_file = self.get_override_file(override_dir, study, override_filename)
        if override_file is None:
            return None

        staging_file = self.study_dir(study) / staging_filename
        logger.info(f"Override file exists for {staging_file}: {override_file}")
        staging_file.parent.mkdir(parents=True, exist_ok=True)
        if override_file.is_file():
            shutil.copyfile(override_file, staging_file)
        else:
            shutil.copytree(override_file, staging_file, dirs_exist_ok=True)
        return staging_file
