"""Tests for repository URL normalization, version ordering and deduplication."""

import pytest

from agentichub.registry.dedup import (
    compare_versions,
    deduplicate,
    normalize_repository_url,
)

from tests.conftest import make_server


class TestNormalizeRepositoryUrl:
    @pytest.mark.parametrize(
        "url",
        [
            "https://GitHub.com/A/B.git/",
            "github.com/a/b",
            "http://www.github.com/a/b/",
            "/github.com/a/b.git",
        ],
    )
    def test_variants_share_identity(self, url):
        """Scheme, case, www, .git and slashes do not affect identity."""
        assert normalize_repository_url(url) == "github.com/a/b"

    def test_idempotent(self):
        """Normalizing a normalized URL changes nothing."""
        for url in ["https://GitHub.com/A/B.git/", "gitlab.com/x/y.git.git", "/a/"]:
            once = normalize_repository_url(url)
            assert normalize_repository_url(once) == once


class TestCompareVersions:
    def test_numeric_runs(self):
        """Digit runs compare as integers, not text."""
        assert compare_versions("1.10", "1.9") == 1
        assert compare_versions("2.9", "2.10") == -1
        assert compare_versions("0.6.2", "0.6.2") == 0

    def test_missing_version_is_empty(self):
        """None sorts like an empty version string."""
        assert compare_versions(None, "") == 0
        assert compare_versions(None, "0.1") == -1
        assert compare_versions("0.1", None) == 1

    def test_prerelease_suffix(self):
        """Text chunks still order after shared numeric prefixes."""
        assert compare_versions("1.0.0-beta", "1.0.0") == 1
        assert compare_versions("1.0.0-alpha", "1.0.0-beta") == -1


class TestDeduplicate:
    def test_keeps_highest_version(self):
        """The numerically newest version wins for one repository."""
        old = make_server("io.github.a/b", "https://github.com/a/b", "1.9")
        new = make_server("io.github.a/b", "https://github.com/A/B.git", "1.10")

        result = deduplicate([old, new])

        assert result == [new]

    def test_version_tie_prefers_more_packages(self):
        """On equal versions the listing with more packages wins."""
        slim = make_server("a/b", "github.com/a/b", "1.0", packages=[])
        full = make_server(
            "a/b-full",
            "github.com/a/b",
            "1.0",
            packages=[
                {"registryType": "npm", "identifier": "@a/b"},
                {"registryType": "pypi", "identifier": "a-b"},
            ],
        )

        assert deduplicate([slim, full]) == [full]
        assert deduplicate([full, slim]) == [full]

    def test_full_tie_keeps_first_seen(self):
        """Identical versions and package counts keep the first record."""
        first = make_server("first", "github.com/a/b", "1.0")
        second = make_server("second", "github.com/a/b", "1.0")

        assert deduplicate([first, second]) == [first]

    def test_urlless_records_group_by_name(self):
        """Records without a repository collapse on raw name, first-seen."""
        one = make_server("local/tool", version="2.0")
        two = make_server("local/tool", version="3.0")
        other = make_server("local/other")

        result = deduplicate([one, two, other])

        assert len(result) == 2
        assert one in result
        assert other in result

    def test_no_duplicate_identities(self):
        """Output never holds two records with the same normalized URL."""
        servers = [
            make_server(f"s{i}", url, str(i))
            for i, url in enumerate(
                [
                    "https://github.com/x/one",
                    "github.com/X/one.git",
                    "https://github.com/x/two/",
                    "http://www.github.com/x/two",
                    "github.com/x/three",
                ]
            )
        ]

        result = deduplicate(servers)
        identities = [s.normalized_repository_url for s in result]

        assert len(identities) == len(set(identities)) == 3

    def test_empty_input(self):
        """No listings yields no output."""
        assert deduplicate([]) == []
