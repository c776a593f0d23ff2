"""End-to-end tests for the extract, optimize, pack pipeline."""

import io
import logging
import tarfile
import tempfile
from pathlib import Path

import pytest

from office_image_optimizer.common import CorruptedFileError
from office_image_optimizer.config import OptimizerConfig
from office_image_optimizer.errors import UnsupportedArchiveError
from office_image_optimizer.pipeline import (
    WORKING_TREE_PREFIX,
    DocumentOptimizer,
    default_output_path,
)

from document_builders import (
    build_zip,
    image_bytes,
    image_size,
    mark_entry_unsupported,
    odt_entries,
    read_entry,
    zip_names,
)


@pytest.fixture(autouse=True)
def isolated_tempdir(tmp_path, monkeypatch):
    """Route working trees into a directory the test can inspect."""
    scratch = tmp_path / "scratch"
    scratch.mkdir()
    monkeypatch.setattr(tempfile, "tempdir", str(scratch))
    return scratch


@pytest.fixture
def document(tmp_path):
    return build_zip(tmp_path / "report.odt", odt_entries())


@pytest.fixture
def optimizer():
    return DocumentOptimizer(OptimizerConfig(max_dimension=800))


class TestDefaultOutputPath:
    """Test output file naming."""

    def test_appends_suffix_before_extension(self):
        assert default_output_path(Path("report.odt")) == Path("report_optimized.odt")

    def test_keeps_directory(self):
        assert default_output_path(Path("/docs/slides.odp")) == Path("/docs/slides_optimized.odp")

    def test_only_last_extension_is_kept(self):
        assert default_output_path(Path("archive.tar.gz")) == Path("archive.tar_optimized.gz")

    def test_no_extension(self):
        assert default_output_path(Path("report")) == Path("report_optimized")


class TestOptimizeFile:
    """Test whole-document optimization."""

    def test_downscales_large_and_keeps_small_images(self, optimizer, document):
        result = optimizer.optimize_file(document)

        out_file = document.with_name("report_optimized.odt")
        assert result.out_file == out_file
        assert image_size(read_entry(out_file, "Pictures/big.png")) == (800, 600)
        assert read_entry(out_file, "Pictures/small.png") == read_entry(document, "Pictures/small.png")
        assert result.optimization.resized == 1
        assert result.optimization.examined == 2

    def test_path_set_preserved(self, optimizer, document, tmp_path):
        out_file = tmp_path / "out.odt"

        optimizer.optimize_file(document, out_file)

        assert set(zip_names(out_file)) == set(zip_names(document))

    def test_path_set_preserved_without_directory_entries(self, optimizer, tmp_path):
        entries = {name: data for name, data in odt_entries().items() if data is not None}
        document = build_zip(tmp_path / "report.odt", entries)
        out_file = tmp_path / "out.odt"

        optimizer.optimize_file(document, out_file)

        assert zip_names(document) == [
            "mimetype", "META-INF/manifest.xml", "content.xml",
            "Pictures/big.png", "Pictures/small.png",
        ]
        assert set(zip_names(out_file)) == set(zip_names(document))

    def test_empty_directory_entry_kept(self, optimizer, tmp_path):
        entries = odt_entries()
        entries["Configurations2/toolbar/"] = None
        document = build_zip(tmp_path / "report.odt", entries)
        out_file = tmp_path / "out.odt"

        optimizer.optimize_file(document, out_file)

        assert "Configurations2/toolbar/" in zip_names(out_file)
        assert set(zip_names(out_file)) == set(zip_names(document))

    def test_other_entries_byte_identical(self, optimizer, document, tmp_path):
        out_file = tmp_path / "out.odt"

        optimizer.optimize_file(document, out_file)

        for name in ("mimetype", "content.xml", "META-INF/manifest.xml"):
            assert read_entry(out_file, name) == read_entry(document, name)

    def test_mimetype_stays_first(self, optimizer, document, tmp_path):
        out_file = tmp_path / "out.odt"

        optimizer.optimize_file(document, out_file)

        assert zip_names(out_file)[0] == "mimetype"

    def test_second_run_leaves_pictures_unchanged(self, optimizer, document, tmp_path):
        first = tmp_path / "first.odt"
        second = tmp_path / "second.odt"

        optimizer.optimize_file(document, first)
        result = optimizer.optimize_file(first, second)

        assert result.optimization.resized == 0
        for name in ("Pictures/big.png", "Pictures/small.png"):
            assert read_entry(second, name) == read_entry(first, name)
        assert first.read_bytes() == second.read_bytes()

    def test_output_is_reproducible(self, optimizer, document, tmp_path):
        one = tmp_path / "one.odt"
        two = tmp_path / "two.odt"

        optimizer.optimize_file(document, one)
        optimizer.optimize_file(document, two)

        assert one.read_bytes() == two.read_bytes()

    def test_unreadable_entry_is_dropped_and_rest_kept(self, optimizer, tmp_path):
        entries = odt_entries()
        entries["broken.bin"] = b"payload"
        document = build_zip(tmp_path / "report.odt", entries)
        mark_entry_unsupported(document, "broken.bin")
        out_file = tmp_path / "out.odt"

        result = optimizer.optimize_file(document, out_file)

        assert result.extraction.skipped == ["broken.bin"]
        assert set(zip_names(out_file)) == set(zip_names(document)) - {"broken.bin"}
        assert read_entry(out_file, "content.xml") == b"<office:document-content/>"

    def test_overwrites_input_in_place(self, optimizer, document):
        optimizer.optimize_file(document, document)

        assert image_size(read_entry(document, "Pictures/big.png")) == (800, 600)

    def test_creates_output_directory(self, optimizer, document, tmp_path):
        out_file = tmp_path / "nested" / "dir" / "out.odt"

        optimizer.optimize_file(document, out_file)

        assert out_file.is_file()

    def test_tar_input_gives_zip_output(self, optimizer, tmp_path):
        source = tmp_path / "bundle.tar.gz"
        with tarfile.open(source, "w:gz") as tf:
            for name, data in (
                ("content.xml", b"<office:document-content/>"),
                ("Pictures/big.png", image_bytes(2000, 1000)),
            ):
                info = tarfile.TarInfo(name=name)
                info.size = len(data)
                tf.addfile(info, io.BytesIO(data))
        out_file = tmp_path / "bundle.zip"

        optimizer.optimize_file(source, out_file)

        assert set(zip_names(out_file)) == {"content.xml", "Pictures/big.png"}
        assert image_size(read_entry(out_file, "Pictures/big.png")) == (800, 400)

    def test_working_tree_removed_after_success(self, optimizer, document, isolated_tempdir):
        optimizer.optimize_file(document)

        assert list(isolated_tempdir.iterdir()) == []


class TestOptimizeFileFailures:
    """Test fatal failures."""

    def test_missing_input(self, optimizer, tmp_path):
        with pytest.raises(FileNotFoundError):
            optimizer.optimize_file(tmp_path / "missing.odt")

    def test_not_an_archive(self, optimizer, tmp_path):
        source = tmp_path / "notes.odt"
        source.write_bytes(b"plain text, not a container" * 30)

        with pytest.raises(UnsupportedArchiveError):
            optimizer.optimize_file(source)

        assert not default_output_path(source).exists()

    def test_corrupted_picture_aborts_without_output(self, optimizer, tmp_path, isolated_tempdir):
        entries = odt_entries()
        entries["Pictures/broken.png"] = b"not an image"
        document = build_zip(tmp_path / "report.odt", entries)
        out_file = tmp_path / "out.odt"

        with pytest.raises(CorruptedFileError):
            optimizer.optimize_file(document, out_file)

        assert not out_file.exists()
        assert list(isolated_tempdir.iterdir()) == []

    def test_failed_run_keeps_existing_output(self, optimizer, tmp_path):
        entries = odt_entries()
        entries["Pictures/broken.png"] = b"not an image"
        document = build_zip(tmp_path / "report.odt", entries)
        out_file = tmp_path / "out.odt"
        out_file.write_bytes(b"previous result")

        with pytest.raises(CorruptedFileError):
            optimizer.optimize_file(document, out_file)

        assert out_file.read_bytes() == b"previous result"

    def test_working_tree_prefix(self, optimizer, document, monkeypatch):
        seen = []
        real = tempfile.TemporaryDirectory

        def recording(*args, **kwargs):
            seen.append(kwargs.get("prefix"))
            return real(*args, **kwargs)

        monkeypatch.setattr(tempfile, "TemporaryDirectory", recording)

        optimizer.optimize_file(document)

        assert seen == [WORKING_TREE_PREFIX]

    def test_failed_phase_logged_once_with_traceback(self, optimizer, tmp_path, caplog):
        entries = odt_entries()
        entries["Pictures/broken.png"] = b"not an image"
        document = build_zip(tmp_path / "report.odt", entries)

        with caplog.at_level(logging.INFO):
            with pytest.raises(CorruptedFileError):
                optimizer.optimize_file(document, tmp_path / "out.odt")

        errors = [record for record in caplog.records if record.levelno >= logging.ERROR]
        assert len(errors) == 1
        assert errors[0].exc_info[0] is CorruptedFileError
        assert errors[0].extra_fields == {"file": str(document), "phase": "optimize"}
