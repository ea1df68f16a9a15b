"""Tests for the timestamp reference lookup."""

import os

from hostsvc import ReferenceTimestampResolver

from conftest import REFERENCE_MTIME_NS


class TestResolve:
    """Tests for ReferenceTimestampResolver.resolve."""

    def test_primary_candidate_preferred(self, service_config, reference_file):
        fallback = service_config.reference_fallback
        fallback.parent.mkdir(parents=True)
        fallback.write_text("readme")

        assert ReferenceTimestampResolver(service_config).resolve() == reference_file

    def test_fallback_used_without_primary(self, service_config):
        fallback = service_config.reference_fallback
        fallback.parent.mkdir(parents=True)
        fallback.write_text("readme")

        assert ReferenceTimestampResolver(service_config).resolve() == fallback

    def test_scan_finds_first_file_and_skips_binary(self, service_config):
        binary = service_config.binary_path
        binary.parent.mkdir(parents=True)
        binary.write_text("binary")
        lib = service_config.install_root / "lib"
        lib.mkdir()
        (lib / "b.so").write_text("b")
        (lib / "a.so").write_text("a")

        assert ReferenceTimestampResolver(service_config).resolve() == lib / "a.so"

    def test_nothing_found_returns_none(self, service_config):
        assert ReferenceTimestampResolver(service_config).resolve() is None

    def test_missing_install_root_returns_none(self, service_config):
        service_config.install_root.rmdir()
        assert ReferenceTimestampResolver(service_config).resolve() is None


class TestApply:
    """Tests for ReferenceTimestampResolver.apply."""

    def test_copies_mtime_and_skips_missing(self, service_config, reference_file, tmp_path):
        present = tmp_path / "present"
        present.write_text("x")
        missing = tmp_path / "missing"

        ReferenceTimestampResolver(service_config).apply(reference_file, [present, missing])

        assert present.stat().st_mtime_ns == REFERENCE_MTIME_NS
        assert not missing.exists()

    def test_reference_is_left_untouched(self, service_config, reference_file, tmp_path):
        before = os.stat(reference_file)
        target = tmp_path / "target"
        target.write_text("x")

        ReferenceTimestampResolver(service_config).apply(reference_file, [target])

        assert os.stat(reference_file).st_mtime_ns == before.st_mtime_ns
        assert reference_file.read_text() == "hostagent 2.0.0\n"

    def test_vanished_reference_is_skipped(self, service_config, reference_file, tmp_path, caplog):
        target = tmp_path / "target"
        target.write_text("x")
        before = target.stat().st_mtime_ns
        reference_file.unlink()

        ReferenceTimestampResolver(service_config).apply(reference_file, [target])

        assert target.stat().st_mtime_ns == before
        assert "skipping timestamp sync" in caplog.text
