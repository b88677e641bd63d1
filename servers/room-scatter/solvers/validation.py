"""Placement validation.

Checks a footprint against the region boundary and the ledger, and audits a
whole ledger after a run. Results use the {"valid": bool, "issues": [...]}
shape throughout.
"""

import math
from typing import Any, Dict, List

from shapely.geometry import box

from models import Footprint, Region
from state import Ledger

# Slack for float round-off on boundary comparisons
TOLERANCE = 1e-9
FLOOR_EPSILON = 1e-4


def _xz_box(fp: Footprint, grow: float = 0.0):
    lo, hi = fp.min, fp.max
    return box(lo.x - grow, lo.z - grow, hi.x + grow, hi.z + grow)


def required_separation(a: Footprint, b: Footprint, clearance: float) -> float:
    """Center-to-center distance two footprints must keep on the floor plane."""
    return max(a.size.x, a.size.z) / 2 + max(b.size.x, b.size.z) / 2 + clearance


def check_containment(fp: Footprint, region: Region, clearance: float) -> Dict[str, Any]:
    """Footprint must lie within the region inset by `clearance` on X and Z."""
    issues = []
    lo_x, lo_z = region.min.x + clearance, region.min.z + clearance
    hi_x, hi_z = region.max.x - clearance, region.max.z - clearance
    if lo_x > hi_x or lo_z > hi_z:
        issues.append(f"Region inset by {clearance:.3f} is empty")
        return {"valid": False, "issues": issues}

    inset = box(lo_x - TOLERANCE, lo_z - TOLERANCE, hi_x + TOLERANCE, hi_z + TOLERANCE)
    if not inset.covers(_xz_box(fp)):
        lo, hi = fp.min, fp.max
        if lo.x < lo_x - TOLERANCE:
            issues.append(f"min x out by {lo_x - lo.x:.4f}")
        if hi.x > hi_x + TOLERANCE:
            issues.append(f"max x out by {hi.x - hi_x:.4f}")
        if lo.z < lo_z - TOLERANCE:
            issues.append(f"min z out by {lo_z - lo.z:.4f}")
        if hi.z > hi_z + TOLERANCE:
            issues.append(f"max z out by {hi.z - hi_z:.4f}")
        if not issues:
            issues.append("Footprint outside inset region")
    return {"valid": not issues, "issues": issues}


def check_separation(fp: Footprint, ledger: Ledger, clearance: float) -> Dict[str, Any]:
    """Radius-from-max-extent proximity check against every ledger entry."""
    issues = []
    for item in ledger:
        other = item.exact_footprint
        dist = math.hypot(fp.center.x - other.center.x, fp.center.z - other.center.z)
        needed = required_separation(fp, other, clearance)
        if dist < needed - TOLERANCE:
            issues.append(f"too close to {item.id} ({dist:.3f} < {needed:.3f})")
    return {"valid": not issues, "issues": issues}


def check_box_overlap(fp: Footprint, ledger: Ledger, clearance: float) -> Dict[str, Any]:
    """Box intersection against ledger entries inflated by `clearance` on X and Z."""
    issues = []
    new_box = _xz_box(fp)
    lo, hi = fp.min, fp.max
    window = (lo.x - clearance, lo.z - clearance, hi.x + clearance, hi.z + clearance)
    for item in ledger.nearby(window):
        inflated = _xz_box(item.exact_footprint, grow=clearance)
        if inflated.intersects(new_box) and not inflated.touches(new_box):
            issues.append(f"intersects {item.id}")
    return {"valid": not issues, "issues": issues}


def validate_estimate(fp: Footprint, region: Region, ledger: Ledger, clearance: float) -> Dict[str, Any]:
    """Cheap pre-instantiation check on an estimated footprint."""
    containment = check_containment(fp, region, clearance)
    separation = check_separation(fp, ledger, clearance)
    return {
        "valid": containment["valid"] and separation["valid"],
        "issues": containment["issues"] + separation["issues"],
    }


def validate_exact(fp: Footprint, region: Region, ledger: Ledger, clearance: float) -> Dict[str, Any]:
    """Authoritative post-instantiation check on a measured footprint."""
    containment = check_containment(fp, region, clearance)
    separation = check_separation(fp, ledger, clearance)
    overlap = check_box_overlap(fp, ledger, clearance)
    return {
        "valid": containment["valid"] and separation["valid"] and overlap["valid"],
        "issues": containment["issues"] + separation["issues"] + overlap["issues"],
    }


def validate_ledger(ledger: Ledger, region: Region) -> Dict[str, Any]:
    """Audit every committed item.

    Containment is checked at each item's own clearance, separation for every
    pair committed under the same tier (using the later item's clearance),
    and floor contact within FLOOR_EPSILON.
    """
    items = ledger.items
    containment_issues: List[str] = []
    separation_issues: List[str] = []
    floor_issues: List[str] = []

    for item in items:
        fp = item.exact_footprint
        result = check_containment(fp, region, item.clearance)
        if not result["valid"]:
            containment_issues.append(f"{item.id}: {'; '.join(result['issues'])}")
        if abs(fp.min.y - region.floor_y) > FLOOR_EPSILON:
            floor_issues.append(f"{item.id}: bottom at {fp.min.y:.5f}, floor at {region.floor_y:.5f}")

    for i, earlier in enumerate(items):
        for later in items[i + 1 :]:
            if earlier.tier != later.tier:
                continue
            a, b = earlier.exact_footprint, later.exact_footprint
            dist = math.hypot(a.center.x - b.center.x, a.center.z - b.center.z)
            needed = required_separation(a, b, later.clearance)
            if dist < needed - TOLERANCE:
                separation_issues.append(f"{earlier.id} <-> {later.id}: {dist:.3f} < {needed:.3f}")

    issues = []
    if containment_issues:
        issues.append("Items outside the region")
    if separation_issues:
        issues.append("Items too close together")
    if floor_issues:
        issues.append("Items not resting on the floor")

    return {
        "valid": not issues,
        "issues": issues,
        "item_count": len(items),
        "containment_issues": containment_issues,
        "separation_issues": separation_issues,
        "floor_issues": floor_issues,
    }
