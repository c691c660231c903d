import pytest

from gitflux.file_types import OTHER_CATEGORY, OTHER_COLOR, categorize_file_type, file_extension


@pytest.mark.parametrize(
    "filename, category",
    [
        ("src/app.py", "Python"),
        ("web/Component.TSX", "TypeScript"),
        ("README.md", "Documentation"),
        ("config/settings.yaml", "Config"),
        ("assets/logo.svg", "Images"),
    ],
)
def test_known_extensions(filename, category):
    assert categorize_file_type(filename).category == category


def test_unknown_and_missing_extensions_fall_back_to_other():
    unknown = categorize_file_type("data/archive.xyz")
    bare = categorize_file_type("Makefile")

    assert unknown == (file_extension("data/archive.xyz"), OTHER_CATEGORY, OTHER_COLOR)
    assert bare.extension == ""
    assert bare.category == OTHER_CATEGORY
    assert bare.color == OTHER_COLOR


def test_extension_comes_from_last_path_segment():
    assert file_extension("some.dir/Dockerfile") == ""
    assert file_extension("a/b/archive.tar.GZ") == "gz"
    assert categorize_file_type("").category == OTHER_CATEGORY
