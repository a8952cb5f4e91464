# File: genostage/tools.py
# Location: genostage/genostage/tools.py

"""
External annotation tool module.

Each external program the annotation pipeline drives (coordinate liftover,
functional annotation, pathogenicity scoring) is exposed through the same
narrow interface: ``run(input_path, output_path)``, which either returns
after a successful run or raises. The command-line implementations build
their argv from ``ToolSettings``; tests substitute recording fakes.
"""

import logging
import subprocess
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple

from .pipeline_core.error_handling import ToolExecutionError, ToolNotFoundError
from .utils import run_command

logger = logging.getLogger("genostage")


@dataclass(frozen=True)
class ToolSettings:
    """Locations and fixed options of the external annotation tools."""

    liftover_command: Tuple[str, ...] = ("liftover-maf",)
    liftover_binary: str = "liftOver"
    liftover_chain: str = "hg18ToHg19.over.chain"
    annotator_command: Tuple[str, ...] = ("oncotator-maf",)
    annotator_options: Tuple[str, ...] = ()
    scorer_command: Tuple[str, ...] = ("mutation-assessor-maf",)
    scorer_options: Tuple[str, ...] = ()

    @classmethod
    def from_config(
        cls,
        cfg: Dict[str, Any],
        liftover_binary: Optional[str] = None,
        liftover_chain: Optional[str] = None,
    ) -> "ToolSettings":
        """
        Build settings from a configuration dictionary.

        Parameters
        ----------
        cfg : dict
            Configuration with optional "liftover", "annotator" and
            "scorer" sections.
        liftover_binary, liftover_chain : str, optional
            Override the configured liftover locations.

        Returns
        -------
        ToolSettings
        """
        defaults = cls()
        liftover = cfg.get("liftover", {})
        annotator = cfg.get("annotator", {})
        scorer = cfg.get("scorer", {})
        return cls(
            liftover_command=tuple(liftover.get("command", defaults.liftover_command)),
            liftover_binary=liftover_binary or liftover.get("binary", defaults.liftover_binary),
            liftover_chain=liftover_chain or liftover.get("chain", defaults.liftover_chain),
            annotator_command=tuple(annotator.get("command", defaults.annotator_command)),
            annotator_options=tuple(annotator.get("options", defaults.annotator_options)),
            scorer_command=tuple(scorer.get("command", defaults.scorer_command)),
            scorer_options=tuple(scorer.get("options", defaults.scorer_options)),
        )

    def executables(self) -> List[str]:
        """Return the programs that must be on PATH for a full run."""
        return [
            self.liftover_command[0],
            self.annotator_command[0],
            self.scorer_command[0],
        ]


class ExternalTool(ABC):
    """A command-line program with an (input, output) contract."""

    @property
    @abstractmethod
    def name(self) -> str:
        """Short tool name used in logs and errors."""
        pass

    @abstractmethod
    def build_command(self, input_path: str, output_path: str) -> List[str]:
        """Return the argv for one invocation."""
        pass

    def run(self, input_path: str, output_path: str) -> None:
        """
        Run the tool synchronously.

        Raises
        ------
        ToolNotFoundError
            If the executable cannot be found.
        ToolExecutionError
            If the tool exits with a non-zero status.
        """
        cmd = self.build_command(str(input_path), str(output_path))
        logger.info(f"Calling {self.name}: {input_path} -> {output_path}")
        try:
            stdout = run_command(cmd)
        except FileNotFoundError:
            raise ToolNotFoundError(cmd[0], stage=self.name)
        except subprocess.CalledProcessError as e:
            raise ToolExecutionError(self.name, e.returncode, e.stderr, stage=self.name)
        if stdout:
            logger.debug(f"{self.name} output: {stdout.strip()}")

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(name='{self.name}')"


class LiftoverTool(ExternalTool):
    """Rewrites genomic coordinates from the older to the newer build."""

    def __init__(self, settings: ToolSettings):
        self.settings = settings

    @property
    def name(self) -> str:
        return "liftover"

    def build_command(self, input_path: str, output_path: str) -> List[str]:
        return list(self.settings.liftover_command) + [
            input_path,
            output_path,
            self.settings.liftover_binary,
            self.settings.liftover_chain,
        ]


class AnnotatorTool(ExternalTool):
    """Adds functional annotation columns to a mutation table."""

    def __init__(self, settings: ToolSettings):
        self.settings = settings

    @property
    def name(self) -> str:
        return "annotator"

    def build_command(self, input_path: str, output_path: str) -> List[str]:
        return (
            list(self.settings.annotator_command)
            + [input_path, output_path]
            + list(self.settings.annotator_options)
        )


class ScorerTool(ExternalTool):
    """Adds pathogenicity assessment columns to a mutation table."""

    def __init__(self, settings: ToolSettings):
        self.settings = settings

    @property
    def name(self) -> str:
        return "scorer"

    def build_command(self, input_path: str, output_path: str) -> List[str]:
        return (
            list(self.settings.scorer_command)
            + [input_path, output_path]
            + list(self.settings.scorer_options)
        )
