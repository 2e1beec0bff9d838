"""CVSS severity scoring for advisories.

Advisories may carry a CVSS v3.x or v4.0 vector string. The presenter shows
its base score and qualitative rating; the OSV exporter copies the vector.

Provides:
- calculate_severity: Base score and severity label from a CVSS vector
- severity_label: Map a base score to none/low/medium/high/critical
"""

from cvss import CVSS3, CVSS4
from cvss.exceptions import CVSSError


def severity_label(score: float) -> str:
    """Map a CVSS base score to its qualitative severity rating.

    Args:
        score: CVSS base score (0.0 - 10.0)

    Returns:
        "none" | "low" | "medium" | "high" | "critical"
    """
    if score == 0.0:
        return "none"
    elif score < 4.0:
        return "low"
    elif score < 7.0:
        return "medium"
    elif score < 9.0:
        return "high"
    else:
        return "critical"


def calculate_severity(vector: str) -> tuple[float, str]:
    """Calculate CVSS base score and severity label from a vector string.

    Args:
        vector: CVSS vector, e.g. "CVSS:3.1/AV:N/AC:L/PR:N/UI:N/S:U/C:H/I:H/A:H"

    Returns:
        Tuple of (score, label) where:
        - score: CVSS base score (0.0 - 10.0)
        - label: "none" | "low" | "medium" | "high" | "critical"

    Raises:
        ValueError: If the vector is not a valid CVSS v3.x or v4.0 vector

    Example:
        >>> calculate_severity("CVSS:3.1/AV:N/AC:L/PR:N/UI:N/S:U/C:H/I:H/A:H")
        (9.8, 'critical')
    """
    try:
        if vector.startswith("CVSS:4."):
            score = float(CVSS4(vector).base_score)
        elif vector.startswith("CVSS:3."):
            score = float(CVSS3(vector).base_score)
        else:
            raise ValueError(f"unsupported CVSS vector {vector!r}")
    except CVSSError as e:
        raise ValueError(f"invalid CVSS vector {vector!r}: {e}") from e

    return (score, severity_label(score))
