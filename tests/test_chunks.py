from __future__ import annotations

import gzip
from pathlib import Path

import pytest
import zstandard as zstd

from dupcheck_core.chunks import ChunkFile, ChunkReader, ChunkWriter, chunk_suffix, write_chunk
from dupcheck_core.exceptions import ChunkFormatError
from dupcheck_core.registry import TempFileRegistry


def test_write_chunk_layout(chunk_dir: Path, registry: TempFileRegistry) -> None:
    chunk = write_chunk(["alpha", "beta", "gam%0Ama"], 3, temp_dir=chunk_dir, registry=registry)

    assert chunk.count == 3
    assert chunk.path.parent == chunk_dir
    assert chunk.path.name.startswith("dupcheck_")
    assert chunk.path.suffix == ".txt"
    assert chunk.path.read_bytes() == b"3\nalpha\nbeta\ngam%0Ama\n"
    assert chunk.path in registry


def test_reader_yields_escaped_keys_in_order(chunk_dir: Path, registry: TempFileRegistry) -> None:
    keys = ["a", "b%25c", "d"]
    chunk = write_chunk(keys, len(keys), temp_dir=chunk_dir, registry=registry)

    with ChunkReader(chunk) as reader:
        assert reader.remaining == 3
        assert list(reader) == keys
        assert reader.remaining == 0


def test_empty_key_survives_round_trip(chunk_dir: Path, registry: TempFileRegistry) -> None:
    chunk = write_chunk(["", "x"], 2, temp_dir=chunk_dir, registry=registry)

    with ChunkReader(chunk) as reader:
        assert list(reader) == ["", "x"]


def test_lone_surrogates_are_preserved(chunk_dir: Path, registry: TempFileRegistry) -> None:
    key = "bad\ud800key"
    chunk = write_chunk([key], 1, temp_dir=chunk_dir, registry=registry)

    with ChunkReader(chunk) as reader:
        assert list(reader) == [key]


@pytest.mark.parametrize(("compression", "suffix"), [("gzip", ".txt.gz"), ("zstd", ".txt.zst")])
def test_compressed_chunks(
    chunk_dir: Path, registry: TempFileRegistry, compression: str, suffix: str
) -> None:
    keys = [f"key-{i:04d}" for i in range(100)]
    chunk = write_chunk(keys, len(keys), temp_dir=chunk_dir, compression=compression, registry=registry)

    assert chunk.path.name.endswith(suffix)
    if compression == "gzip":
        raw = gzip.decompress(chunk.path.read_bytes())
    else:
        with zstd.ZstdDecompressor().stream_reader(chunk.path.open("rb")) as stream:
            raw = stream.read()
    assert raw.decode("utf-8").splitlines()[0] == "100"

    with ChunkReader(chunk) as reader:
        assert list(reader) == keys


def test_unknown_compression_is_rejected() -> None:
    with pytest.raises(ValueError, match="Unknown chunk compression"):
        chunk_suffix("bz2")


def test_writer_discards_file_on_error(chunk_dir: Path, registry: TempFileRegistry) -> None:
    with pytest.raises(RuntimeError):
        with ChunkWriter(2, temp_dir=chunk_dir, registry=registry) as writer:
            writer.write("a")
            raise RuntimeError("boom")

    assert list(chunk_dir.iterdir()) == []
    assert len(registry) == 0


def test_writer_rejects_wrong_count(chunk_dir: Path, registry: TempFileRegistry) -> None:
    with pytest.raises(ChunkFormatError, match="announced 2 keys but 1 were written"):
        with ChunkWriter(2, temp_dir=chunk_dir, registry=registry) as writer:
            writer.write("a")

    assert list(chunk_dir.iterdir()) == []
    assert len(registry) == 0


def test_reader_rejects_bad_header(tmp_path: Path) -> None:
    path = tmp_path / "dupcheck_bad.txt"
    path.write_text("not-a-number\na\n", encoding="utf-8")

    with pytest.raises(ChunkFormatError, match="Invalid chunk header") as excinfo:
        ChunkReader(ChunkFile(path=path, count=1))
    assert excinfo.value.context["path"] == str(path)


def test_reader_rejects_header_mismatch(tmp_path: Path) -> None:
    path = tmp_path / "dupcheck_mismatch.txt"
    path.write_text("3\na\nb\nc\n", encoding="utf-8")

    with pytest.raises(ChunkFormatError, match="announces 3 keys, expected 2"):
        ChunkReader(ChunkFile(path=path, count=2))


def test_reader_detects_truncated_file(tmp_path: Path) -> None:
    path = tmp_path / "dupcheck_short.txt"
    path.write_text("3\na\nb\n", encoding="utf-8")

    with ChunkReader(ChunkFile(path=path, count=3)) as reader:
        assert next(reader) == "a"
        assert next(reader) == "b"
        with pytest.raises(ChunkFormatError, match="ended 1 key"):
            next(reader)


def test_reader_propagates_missing_file(tmp_path: Path) -> None:
    with pytest.raises(FileNotFoundError):
        ChunkReader(ChunkFile(path=tmp_path / "missing.txt", count=1))
