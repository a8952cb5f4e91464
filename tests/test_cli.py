"""Tests for the genostage command-line interface."""

import json
import logging
import subprocess
from pathlib import Path
from unittest.mock import patch

import pytest

from genostage.cli import create_parser, main, parse_args
from genostage.utils import to_file_url
from tests.conftest import MAF_HEADER, maf_row


def fake_run_command(cmd):
    """Copy the tool input to its output and tag it with the program name."""
    source, target = cmd[1], cmd[2]
    Path(target).write_text(Path(source).read_text() + f"# {cmd[0]}\n")
    return ""


class TestArgumentParsing:
    """Test argument parsing."""

    def test_stage_arguments(self):
        args = parse_args(
            [
                "--log-level",
                "DEBUG",
                "stage",
                "source.tar.gz",
                "--data-file",
                "<TUMOR_TYPE>.maf",
                "--staging-dir",
                "staging",
                "--staging-file",
                "data_mutations.txt",
                "--study-id",
                "brca_tcga",
                "--tumor-type",
                "BRCA",
                "--mutation",
            ]
        )
        assert args.command == "stage"
        assert args.log_level == "DEBUG"
        assert args.source == "source.tar.gz"
        assert args.data_file == "<TUMOR_TYPE>.maf"
        assert args.mutation is True
        assert args.correlate is None
        assert args.datatype == "data"

    def test_global_tool_options(self):
        args = parse_args(
            ["--liftover-chain", "/opt/chain", "--temp-dir", "/scratch", "annotate", "a", "b"]
        )
        assert args.liftover_chain == "/opt/chain"
        assert args.temp_dir == "/scratch"
        assert (args.input, args.output) == ("a", "b")

    def test_command_required(self):
        with pytest.raises(SystemExit):
            parse_args([])

    def test_stage_requires_staging_options(self):
        with pytest.raises(SystemExit):
            parse_args(["stage", "source.txt", "--data-file", "x"])

    def test_version(self, capsys):
        with pytest.raises(SystemExit) as exc_info:
            create_parser().parse_args(["--version"])
        assert exc_info.value.code == 0
        assert "genostage" in capsys.readouterr().out


@patch("genostage.tools.run_command", side_effect=fake_run_command)
class TestAnnotateCommands:
    """Test the annotate and annotate-dir commands end to end with faked tools."""

    def test_annotate(self, mock_run, write_maf, tmp_path, scratch_dir):
        input_path = write_maf(build="hg18")
        output_path = tmp_path / "final.maf"

        status = main(["--temp-dir", str(scratch_dir), "annotate", str(input_path), str(output_path)])

        assert status == 0
        programs = [call.args[0][0] for call in mock_run.call_args_list]
        assert programs == ["liftover-maf", "oncotator-maf", "mutation-assessor-maf"]
        assert output_path.read_text().endswith("# oncotator-maf\n# mutation-assessor-maf\n")
        assert list(scratch_dir.iterdir()) == []

    def test_annotate_tool_failure(self, mock_run, write_maf, tmp_path, scratch_dir):
        mock_run.side_effect = subprocess.CalledProcessError(1, ["oncotator-maf"], stderr="bad")
        output_path = tmp_path / "final.maf"

        status = main(
            ["--temp-dir", str(scratch_dir), "annotate", str(write_maf()), str(output_path)]
        )

        assert status == 1
        assert not output_path.exists()
        assert list(scratch_dir.iterdir()) == []

    def test_annotate_missing_input(self, mock_run, tmp_path):
        status = main(["annotate", str(tmp_path / "absent.maf"), str(tmp_path / "out.maf")])
        assert status == 1
        mock_run.assert_not_called()
        assert not (tmp_path / "out.maf").exists()

    def test_annotate_file_urls(self, mock_run, write_maf, tmp_path, scratch_dir):
        output_path = tmp_path / "final.maf"

        status = main(
            [
                "--temp-dir",
                str(scratch_dir),
                "annotate",
                to_file_url(write_maf()),
                to_file_url(output_path),
            ]
        )

        assert status == 0
        assert output_path.read_text().endswith("# mutation-assessor-maf\n")

    def test_annotate_dir(self, mock_run, write_maf, tmp_path, scratch_dir):
        root = tmp_path / "download"
        maf = write_maf("a.maf", directory=root / "brca")

        status = main(["--temp-dir", str(scratch_dir), "annotate-dir", str(root)])

        assert status == 0
        assert maf.read_text().endswith("# mutation-assessor-maf\n")

    def test_annotate_dir_reports_failures(self, mock_run, write_maf, tmp_path, scratch_dir):
        mock_run.side_effect = subprocess.CalledProcessError(1, ["x"], stderr="bad")
        root = tmp_path / "download"
        write_maf("a.maf", directory=root)

        assert main(["--temp-dir", str(scratch_dir), "annotate-dir", str(root)]) == 1

    @patch("genostage.utils.shutil.which", return_value=None)
    def test_check_tools(self, mock_which, mock_run, write_maf, tmp_path):
        status = main(["--check-tools", "annotate", str(write_maf()), str(tmp_path / "out.maf")])
        assert status == 1
        mock_run.assert_not_called()

    def test_temp_dir_from_config(self, mock_run, write_maf, tmp_path):
        scratch = tmp_path / "configured_scratch"
        config_file = tmp_path / "config.json"
        config_file.write_text(json.dumps({"temp_dir": str(scratch)}))

        status = main(["-c", str(config_file), "annotate", str(write_maf()), str(tmp_path / "o.maf")])

        assert status == 0
        annotator_output = mock_run.call_args_list[0].args[0][2]
        assert Path(annotator_output).parent == scratch


class TestStageCommand:
    """Test the stage command."""

    def stage_args(self, source, staging_dir, *extra):
        return [
            "stage",
            str(source),
            "--data-file",
            "data_expression",
            "--staging-dir",
            str(staging_dir),
            "--staging-file",
            "data_expression_<CANCER_STUDY>.txt",
            "--study-id",
            "brca_tcga",
            *extra,
        ]

    def test_stage_tarball(self, write_tar_gz, tmp_path):
        source = write_tar_gz(
            "gdac.tar.gz",
            {"gdac/data_expression_median.txt": b"Hugo_Symbol\tS1\nTP53\t1.0\n"},
        )
        staging_dir = tmp_path / "staging"

        assert main(self.stage_args(source, staging_dir)) == 0

        staged = staging_dir / "brca_tcga" / "data_expression_brca_tcga.txt"
        assert staged.read_text() == "Hugo_Symbol\tS1\nTP53\t1.0\n"

    def test_stage_with_correlate(self, tmp_path):
        source = tmp_path / "data_expression.txt"
        source.write_text("Probe\tS1\ncg001\t0.1\ncg002\t0.2\n")
        correlate = tmp_path / "correlate.txt"
        correlate.write_text("Meth_Probe\ncg002\n")
        staging_dir = tmp_path / "staging"

        status = main(self.stage_args(source, staging_dir, "--correlate", str(correlate)))

        assert status == 0
        staged = staging_dir / "brca_tcga" / "data_expression_brca_tcga.txt"
        assert staged.read_text() == "Probe\tS1\ncg002\t0.2\n"

    def test_stage_file_urls(self, tmp_path):
        source = tmp_path / "data_expression.txt"
        source.write_text("Probe\tS1\ncg001\t0.1\ncg002\t0.2\n")
        correlate = tmp_path / "correlate.txt"
        correlate.write_text("Meth_Probe\ncg001\n")
        staging_dir = tmp_path / "staging"

        status = main(
            self.stage_args(to_file_url(source), staging_dir, "--correlate", to_file_url(correlate))
        )

        assert status == 0
        staged = staging_dir / "brca_tcga" / "data_expression_brca_tcga.txt"
        assert staged.read_text() == "Probe\tS1\ncg001\t0.1\n"

    def test_stage_missing_source(self, tmp_path):
        status = main(self.stage_args(tmp_path / "absent.txt", tmp_path / "staging"))
        assert status == 1
        assert not (tmp_path / "staging").exists()

    def test_stage_into_regular_file(self, tmp_path):
        source = tmp_path / "data_expression.txt"
        source.write_text("Hugo_Symbol\tS1\nTP53\t1.0\n")
        blocked = tmp_path / "staging"
        blocked.write_text("not a directory\n")

        assert main(self.stage_args(source, blocked)) == 1
        assert blocked.read_text() == "not a directory\n"

    def test_stage_without_data(self, tmp_path):
        source = tmp_path / "data_expression.txt"
        source.write_text("Hugo_Symbol\tS1\n")
        assert main(self.stage_args(source, tmp_path / "staging")) == 1

    def test_stage_corrupt_source(self, tmp_path):
        source = tmp_path / "data_expression.txt.gz"
        source.write_bytes(b"not gzip")
        assert main(self.stage_args(source, tmp_path / "staging")) == 1

    @patch("genostage.tools.run_command", side_effect=fake_run_command)
    def test_stage_mutation(self, mock_run, tmp_path, scratch_dir):
        source = tmp_path / "brca.maf"
        source.write_text("\t".join(MAF_HEADER) + "\n" + "\t".join(maf_row()) + "\n")
        staging_dir = tmp_path / "staging"

        status = main(
            [
                "--temp-dir",
                str(scratch_dir),
                "stage",
                str(source),
                "--data-file",
                "brca.maf",
                "--staging-dir",
                str(staging_dir),
                "--staging-file",
                "data_mutations_extended.txt",
                "--study-id",
                "brca_tcga",
                "--mutation",
            ]
        )

        assert status == 0
        staged = staging_dir / "brca_tcga" / "data_mutations_extended.txt"
        assert staged.read_text().endswith("# oncotator-maf\n# mutation-assessor-maf\n")
        assert list(scratch_dir.iterdir()) == []


class TestLogging:
    """Test logging configuration."""

    def test_log_file(self, tmp_path):
        source = tmp_path / "data.txt"
        source.write_text("a\tb\n1\t2\n")
        log_file = tmp_path / "logs" / "run.log"
        genostage_logger = logging.getLogger("genostage")
        handlers_before = list(genostage_logger.handlers)

        try:
            main(
                [
                    "--log-file",
                    str(log_file),
                    "stage",
                    str(source),
                    "--data-file",
                    "data.txt",
                    "--staging-dir",
                    str(tmp_path / "staging"),
                    "--staging-file",
                    "data.txt",
                    "--study-id",
                    "s",
                ]
            )
        finally:
            for handler in list(genostage_logger.handlers):
                if handler not in handlers_before:
                    handler.close()
                    genostage_logger.removeHandler(handler)

        assert "Run started" in log_file.read_text()
