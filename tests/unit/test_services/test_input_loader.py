import pytest

from lastpost.services.input_loader import load_identifiers, parse_identifiers
from lastpost.utils.exceptions import InputError


def test_parse_text_lines():
    content = "alice\n  bob  \n\n\ncarol\r\nalice\n"

    assert parse_identifiers(content) == ["alice", "bob", "carol", "alice"]


def test_parse_csv_takes_first_column():
    content = "alice,2023-01-01\nbob\n ,ignored\ncarol , x, y\n"

    assert parse_identifiers(content, csv_mode=True) == ["alice", "bob", "carol"]


def test_text_mode_keeps_commas():
    assert parse_identifiers("a,b\n") == ["a,b"]


def test_load_txt(tmp_path):
    path = tmp_path / "users.txt"
    path.write_text("alice\nbob\n")

    assert load_identifiers(path) == ["alice", "bob"]


def test_load_csv_with_bom(tmp_path):
    path = tmp_path / "users.CSV"
    path.write_bytes("\ufeffalice,1\nbob,2\n".encode("utf-8"))

    assert load_identifiers(path) == ["alice", "bob"]


def test_unsupported_extension(tmp_path):
    path = tmp_path / "users.json"
    path.write_text('["alice"]')

    with pytest.raises(InputError, match="CSV or TXT"):
        load_identifiers(path)


def test_file_without_identifiers(tmp_path):
    path = tmp_path / "empty.txt"
    path.write_text("\n   \n")

    with pytest.raises(InputError, match="No valid usernames"):
        load_identifiers(path)


def test_missing_file(tmp_path):
    with pytest.raises(InputError):
        load_identifiers(tmp_path / "missing.txt")
