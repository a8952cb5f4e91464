"""Shared pytest fixtures for all test modules."""

import gzip
import io
import tarfile
from pathlib import Path
from typing import Callable, Dict, List, Optional

import pytest

from genostage.annotation import AnnotationPipeline
from tests.mocks import make_tools

MAF_HEADER = [
    "Hugo_Symbol",
    "Entrez_Gene_Id",
    "Center",
    "NCBI_Build",
    "Chromosome",
    "Start_position",
    "Tumor_Sample_Barcode",
]


def maf_row(build: str = "37", sample: str = "TCGA-A1-A0SB-01") -> List[str]:
    """Return one MAF data row with the given build token."""
    return ["TP53", "7157", "broad.mit.edu", build, "17", "7577120", sample]


@pytest.fixture
def write_maf(tmp_path) -> Callable[..., Path]:
    """Factory writing a small MAF file and returning its path."""

    def _write(
        name: str = "input.maf",
        build: str = "37",
        rows: Optional[List[List[str]]] = None,
        directory: Optional[Path] = None,
    ) -> Path:
        directory = Path(directory) if directory else tmp_path
        directory.mkdir(parents=True, exist_ok=True)
        if rows is None:
            rows = [maf_row(build)]
        lines = ["\t".join(MAF_HEADER)] + ["\t".join(row) for row in rows]
        path = directory / name
        path.write_text("\n".join(lines) + "\n")
        return path

    return _write


@pytest.fixture
def write_tar_gz(tmp_path) -> Callable[..., Path]:
    """Factory writing a tar.gz archive from a mapping of entry name to bytes."""

    def _write(name: str, entries: Dict[str, Optional[bytes]]) -> Path:
        path = tmp_path / name
        with tarfile.open(path, "w:gz") as tar:
            for entry_name, data in entries.items():
                info = tarfile.TarInfo(entry_name)
                if data is None:
                    info.type = tarfile.DIRTYPE
                    tar.addfile(info)
                else:
                    info.size = len(data)
                    tar.addfile(info, io.BytesIO(data))
        return path

    return _write


@pytest.fixture
def write_gz(tmp_path) -> Callable[[str, bytes], Path]:
    """Factory writing gzip-compressed bytes to a file."""

    def _write(name: str, data: bytes) -> Path:
        path = tmp_path / name
        with gzip.open(path, "wb") as f:
            f.write(data)
        return path

    return _write


@pytest.fixture
def scratch_dir(tmp_path) -> Path:
    """Dedicated temporary directory so leftover artifacts can be counted."""
    path = tmp_path / "scratch"
    path.mkdir()
    return path


@pytest.fixture
def call_log() -> list:
    """Invocation log shared by the mock tools."""
    return []


@pytest.fixture
def tools(call_log) -> dict:
    """Liftover, annotator and scorer mocks that always succeed."""
    return make_tools(call_log)


@pytest.fixture
def pipeline(tools, scratch_dir) -> AnnotationPipeline:
    """Annotation pipeline wired to the mock tools."""
    return AnnotationPipeline(
        liftover=tools["liftover"],
        annotator=tools["annotator"],
        scorer=tools["scorer"],
        temp_dir=scratch_dir,
    )
