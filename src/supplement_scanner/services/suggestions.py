"""Rule-based intake suggestions for recognized supplements."""

from supplement_scanner.domain.recognition import IntakeSuggestions

_INTAKE_RULES: list[tuple[tuple[str, ...], list[str]]] = [
    (("vitamin d", "vitamin a", "vitamin k"), ["morning"]),
    (("magnesium",), ["evening"]),
    (("vitamin b", "b-complex"), ["morning"]),
    (("omega", "fish oil"), ["morning", "evening"]),
    (("probiotic",), ["morning"]),
]

_OUTCOME_RULES: list[tuple[tuple[str, ...], str]] = [
    (("vitamin d",), "Optimize Vitamin D levels"),
    (("magnesium",), "Support relaxation and sleep quality"),
    (("omega", "fish oil"), "Support cardiovascular health"),
    (("vitamin b",), "Boost energy and cognitive function"),
    (("probiotic",), "Improve gut health and digestion"),
    (("iron",), "Support healthy iron levels"),
    (("zinc",), "Support immune function"),
]


def suggest_intake_times(supplement_name: str) -> list[str]:
    """Pick intake times from keywords in the supplement name."""
    name = supplement_name.lower()
    for keywords, times in _INTAKE_RULES:
        if any(keyword in name for keyword in keywords):
            return list(times)
    return ["morning"]


def target_outcome(supplement_name: str) -> str:
    """Describe what taking the supplement aims for."""
    name = supplement_name.lower()
    for keywords, outcome in _OUTCOME_RULES:
        if any(keyword in name for keyword in keywords):
            return outcome
    return f"Optimize {supplement_name} levels"


def rationale(
    supplement_name: str, intake_times: list[str], biomarker_count: int
) -> str:
    """Explain the suggested timing in one or two sentences."""
    times = " and ".join(time.capitalize() for time in intake_times)
    text = f"{supplement_name} is best taken in the {times} for optimal absorption."
    if biomarker_count > 0:
        text += (
            f" This supplement is linked to {biomarker_count} biomarker(s)"
            " we're tracking in your blood work."
        )
    return text


def build_suggestions(
    supplement_name: str, linked_biomarkers: list[str] | None = None
) -> IntakeSuggestions:
    """Assemble intake suggestions for a recognized supplement."""
    biomarkers = list(linked_biomarkers or [])
    times = suggest_intake_times(supplement_name)
    return IntakeSuggestions(
        intake_times=times,
        linked_biomarkers=biomarkers,
        ai_rationale=rationale(supplement_name, times, len(biomarkers)),
        target_outcome=target_outcome(supplement_name),
    )
