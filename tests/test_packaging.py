"""Tests for the project metadata."""

from pathlib import Path

ROOT = Path(__file__).parent.parent


class TestPackaging:
    """Test the files packaging reads."""

    def test_readme(self):
        """Test that the package description is the project README."""
        pyproject = (ROOT / "pyproject.toml").read_text()
        assert 'readme = "README.md"' in pyproject
        assert (ROOT / "README.md").read_text().startswith("# py-voxgen")
