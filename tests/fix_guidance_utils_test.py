import pytest

from blackduck_mcp.models import (
    DependencyPathItem,
    DependencyType,
    UpgradeGuidance,
    UpgradeRecommendation,
    VulnerabilityRiskCounts,
)
from blackduck_mcp.tools.fix_guidance_utils import (
    compare_horizons,
    describe_risk_reduction,
    extract_guidance_identifiers,
    get_fix_availability,
    parse_guidance_href,
    total_vulnerabilities,
)

BASE = "https://bd.example.com/api"


def risks(critical=0, high=0, medium=0, low=0):
    return VulnerabilityRiskCounts(critical=critical, high=high, medium=medium, low=low)


def path_item(type_, *nodes_links):
    """Dependency path item whose nodes carry the given (rel, href) link lists."""
    return DependencyPathItem.model_validate({
        "type": type_,
        "path": [
            {"name": f"node{i}", "_meta": {"links": [{"rel": r, "href": h} for r, h in links]}}
            for i, links in enumerate(nodes_links)
        ],
    })


@pytest.mark.parametrize("counts", [(0, 0, 0, 0), (1, 2, 3, 4), (0, 7, 0, 1), (10, 0, 0, 0)])
def test_total_is_sum_of_buckets(counts):
    r = risks(*counts)
    assert total_vulnerabilities(r) == sum(counts)
    assert total_vulnerabilities(r) >= 0


def test_negative_counts_rejected():
    with pytest.raises(ValueError):
        risks(critical=-1)


def test_describe_no_remaining():
    assert describe_risk_reduction(risks()) == "Eliminates all known vulnerabilities"


def test_describe_only_low_medium():
    assert describe_risk_reduction(risks(medium=3, low=1)) == (
        "Eliminates all critical and high severity vulnerabilities (4 low/medium remain)"
    )


def test_describe_skips_empty_buckets_in_fixed_order():
    assert describe_risk_reduction(risks(critical=1, medium=2)) == "3 vulnerabilities remain: 1 critical, 2 medium"
    assert describe_risk_reduction(risks(1, 2, 3, 4)) == (
        "10 vulnerabilities remain: 1 critical, 2 high, 3 medium, 4 low"
    )
    assert describe_risk_reduction(risks(high=1, low=5)) == "6 vulnerabilities remain: 1 high, 5 low"


def test_parse_direct_href():
    ids = parse_guidance_href(f"{BASE}/components/C1/versions/V1/upgrade-guidance", DependencyType.DIRECT)
    assert ids.componentId == "C1"
    assert ids.componentVersionId == "V1"
    assert ids.originId is None


def test_parse_transitive_href():
    href = f"{BASE}/components/C1/versions/V1/origins/O1/transitive-upgrade-guidance"
    ids = parse_guidance_href(href, DependencyType.TRANSITIVE)
    assert (ids.componentId, ids.componentVersionId, ids.originId) == ("C1", "V1", "O1")


def test_parse_direct_href_ignores_origin():
    href = f"{BASE}/components/C1/versions/V1/origins/O1/upgrade-guidance"
    assert parse_guidance_href(href, DependencyType.DIRECT).originId is None


@pytest.mark.parametrize("href", [
    f"{BASE}/versions/V1/upgrade-guidance",
    f"{BASE}/components/C1/upgrade-guidance",
    "not a link",
])
def test_parse_malformed_href(href):
    assert parse_guidance_href(href, DependencyType.DIRECT) is None


def test_extract_uses_second_to_last_node():
    item = path_item(
        "DIRECT",
        [("upgrade-guidance", f"{BASE}/components/ROOT/versions/RV/upgrade-guidance")],
        [("upgrade-guidance", f"{BASE}/components/C1/versions/V1/upgrade-guidance")],
        [("upgrade-guidance", f"{BASE}/components/LEAF/versions/LV/upgrade-guidance")],
    )
    ids = extract_guidance_identifiers(item, DependencyType.DIRECT)
    assert (ids.componentId, ids.componentVersionId) == ("C1", "V1")


def test_extract_transitive_picks_transitive_link():
    item = path_item(
        "TRANSITIVE",
        [
            ("upgrade-guidance", f"{BASE}/components/X/versions/Y/upgrade-guidance"),
            ("transitive-upgrade-guidance",
             f"{BASE}/components/C1/versions/V1/origins/O1/transitive-upgrade-guidance"),
        ],
        [],
    )
    ids = extract_guidance_identifiers(item, DependencyType.TRANSITIVE)
    assert (ids.componentId, ids.componentVersionId, ids.originId) == ("C1", "V1", "O1")


def test_extract_short_paths_give_nothing():
    assert extract_guidance_identifiers(path_item("DIRECT"), DependencyType.DIRECT) is None
    one = path_item("DIRECT", [("upgrade-guidance", f"{BASE}/components/C1/versions/V1/upgrade-guidance")])
    assert extract_guidance_identifiers(one, DependencyType.DIRECT) is None


def test_extract_without_matching_link():
    item = path_item(
        "TRANSITIVE",
        [("upgrade-guidance", f"{BASE}/components/C1/versions/V1/upgrade-guidance")],
        [],
    )
    assert extract_guidance_identifiers(item, DependencyType.TRANSITIVE) is None


def test_extract_missing_components_segment():
    item = path_item("DIRECT", [("upgrade-guidance", f"{BASE}/versions/V1/upgrade-guidance")], [])
    assert extract_guidance_identifiers(item, DependencyType.DIRECT) is None


def test_fix_availability():
    rec = UpgradeRecommendation(versionName="1.0")
    assert get_fix_availability(UpgradeGuidance()).has_any is False
    a = get_fix_availability(UpgradeGuidance(longTerm=rec))
    assert (a.has_short_term, a.has_long_term, a.has_any) == (False, True, True)


def test_compare_prefers_long_term_with_fewer():
    short = UpgradeRecommendation(versionName="2.17.0", vulnerabilityRisk=risks(medium=2, low=1))
    long = UpgradeRecommendation(versionName="2.20.0", vulnerabilityRisk=risks())
    assert compare_horizons(short, long) == (
        "Recommended: Use the long-term version (2.20.0) as it has fewer vulnerabilities."
    )


def test_compare_short_term_clean():
    short = UpgradeRecommendation(versionName="1.1", vulnerabilityRisk=risks())
    long = UpgradeRecommendation(versionName="2.0", vulnerabilityRisk=risks(low=2))
    assert compare_horizons(short, long) == (
        "Recommended: Use the short-term version (1.1) as it has no known vulnerabilities."
    )


@pytest.mark.parametrize("short_risk,long_risk", [(risks(high=1), risks(high=1)), (risks(low=1), risks(low=3))])
def test_compare_neutral(short_risk, long_risk):
    short = UpgradeRecommendation(versionName="1.1", vulnerabilityRisk=short_risk)
    long = UpgradeRecommendation(versionName="2.0", vulnerabilityRisk=long_risk)
    assert compare_horizons(short, long).startswith("Both versions have vulnerabilities.")
