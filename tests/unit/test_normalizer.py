"""
Test Suite: project name normalization
"""

import pytest

from timesheet_analyzer.normalizer import PrefixRule, ProjectNameNormalizer, SubstringRule


class TestNormalizer:
    """Rule-driven label normalization"""

    def test_substring_rules_are_case_insensitive(self, normalizer):
        assert normalizer.normalize("Astron DOMS and POS Ingesting Services") == "Astron DOMS & POS Ingesting"
        assert normalizer.normalize("000777-GLENCORE MOBILE TRACKING") == "Mobile Warehouse Operations"
        assert normalizer.normalize("  psb to psd migration (phase 3)  ") == "PSB to PSD Migration"
        assert normalizer.normalize(
            "STCMS01-(TCMS)Transportation Contract Management System Project"
        ) == "Sasol Contract Management System"
        assert normalizer.normalize("BTT Weighbridge CR") == "Mobile Arivals (Weighbridge Change request)"

    def test_numeric_code_prefix_is_stripped(self, normalizer):
        assert normalizer.normalize("000123-Acme Platform") == "Acme Platform"
        assert normalizer.normalize("000123-  Acme Platform  ") == "Acme Platform"
        # Hyphen elsewhere, or label too short: left alone
        assert normalizer.normalize("Acme-Platform") == "Acme-Platform"
        assert normalizer.normalize("000123-") == "000123-"

    def test_export_artifact_prefix(self, normalizer):
        assert normalizer.normalize("ges/No_image.jpg00000001-BD- Stronghold") == "BD- Project Stronghold"

    def test_unknown_labels_pass_through(self, normalizer):
        assert normalizer.normalize("Internal Training") == "Internal Training"
        assert normalizer.normalize("  Leave  ") == "Leave"

    def test_normalization_is_total(self, normalizer):
        """Empty, missing and non-string labels never raise"""
        assert normalizer.normalize("") == ""
        assert normalizer.normalize(None) == ""
        assert normalizer.normalize("   ") == ""
        assert normalizer.normalize(0) == ""
        assert normalizer.normalize(12345) == "12345"

    def test_deterministic(self, normalizer):
        results = {normalizer.normalize("000123-Acme Platform") for _ in range(10)}
        assert results == {"Acme Platform"}

    def test_first_matching_rule_wins(self):
        normalizer = ProjectNameNormalizer([
            SubstringRule(match="Mobile", canonical="Mobile (generic)"),
            SubstringRule(match="mobile tracking", canonical="Tracking"),
        ])
        assert normalizer.normalize("Glencore Mobile Tracking") == "Mobile (generic)"

    def test_prefix_rules_apply_after_code_stripping(self):
        normalizer = ProjectNameNormalizer(prefix_rules=[PrefixRule(prefix="OLD ", canonical="Renamed")])
        assert normalizer.normalize("000001-OLD name") == "Renamed"

    def test_rules_load_from_yaml(self, tmp_path):
        rules = tmp_path / "rules.yaml"
        rules.write_text(
            "substring_rules:\n"
            "  - match: 'apollo'\n"
            "    canonical: 'Project Apollo'\n"
            "  - match: 42\n"
            "    canonical: 'numeric match is skipped'\n"
            "  - 'not a mapping'\n"
            "prefix_rules:\n"
            "  - prefix: ''\n"
            "    canonical: 'empty prefix is skipped'\n"
        )
        normalizer = ProjectNameNormalizer.from_file(rules)

        assert len(normalizer.substring_rules) == 1
        assert normalizer.prefix_rules == []
        assert normalizer.normalize("000001-APOLLO rollout") == "Project Apollo"

    def test_empty_rule_file(self, tmp_path):
        rules = tmp_path / "rules.yaml"
        rules.write_text("")
        normalizer = ProjectNameNormalizer.from_file(rules)
        assert normalizer.normalize("000123-Acme") == "Acme"

    def test_rules_path_from_environment(self, tmp_path, monkeypatch):
        rules = tmp_path / "rules.yaml"
        rules.write_text("substring_rules:\n  - match: 'zeus'\n    canonical: 'Zeus'\n")
        monkeypatch.setenv("NAME_RULES_PATH", str(rules))

        normalizer = ProjectNameNormalizer.from_environment()
        assert normalizer.normalize("zeus upgrade") == "Zeus"
        assert normalizer.normalize("BTT Weighbridge") == "BTT Weighbridge"


if __name__ == "__main__":
    pytest.main([__file__, "-v", "--tb=short"])
