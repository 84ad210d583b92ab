"""Medical adjudication rule extraction.

Turns the text of a "Medical Adjudication Guide" into a ``MedicalRuleSet``.
The document is organised in four lettered sections:

- A. services limited by encounter type (inpatient-only / outpatient-only)
- B. services limited by facility type, followed by the facility registry
- C. services required by specific diagnoses
- D. mutually exclusive diagnoses

Every sub-section is extracted independently and tolerantly: a pattern that
does not match produces an empty collection, never an exception.
"""

from __future__ import annotations

import logging
import re

from adjudication.rules.models import (
    DiagnosisRequirement,
    EncounterRule,
    EncounterType,
    FacilityRegistryEntry,
    FacilityTypeRule,
    MedicalRuleSet,
    MutualExclusionRule,
    ServiceEntry,
)

from .patterns import (
    DIAGNOSIS_CODE_TOKEN,
    SERVICE_CODE_TOKEN,
    is_service_code,
    strip_bullet,
)
from .segmenter import (
    document_framing,
    document_title,
    letter_anchors,
    normalize_text,
    preamble,
    segment_sections,
)
from .strategies import SegmentedDocument, StrategyChain, unique_by

logger = logging.getLogger(__name__)

MEDICAL_ANCHORS = letter_anchors("ABCD")

ENCOUNTER_SECTION = "A"
FACILITY_SECTION = "B"
DIAGNOSIS_SECTION = "C"
EXCLUSION_SECTION = "D"

_TITLE_RE = re.compile(r"Medical Adjudication Guide[^\n]*", re.IGNORECASE)

_ENCOUNTER_HEADINGS = {
    EncounterType.INPATIENT: r"Inpatient[-\s]only services",
    EncounterType.OUTPATIENT: r"Outpatient[-\s]only services",
}

_SERVICE_ENTRY_RE = re.compile(rf"({SERVICE_CODE_TOKEN})[ \t]*([^\n•]*)")
_SERVICE_CODE_RE = re.compile(SERVICE_CODE_TOKEN)

_REGISTRY_HEADING_RE = re.compile(r"Facility Registry[^\n]*", re.IGNORECASE)

_FACILITY_RULE_RE = re.compile(
    rf"(?<![A-Za-z0-9_])([A-Z][A-Z0-9]*(?:_[A-Z0-9]+)*)[ \t]*:[ \t]*"
    rf"((?:{SERVICE_CODE_TOKEN}[\s,;]*)+)"
)
_FALLBACK_LABEL_RE = re.compile(r"^([A-Z][A-Z0-9_ ]*?)[ \t]*[:\-–]?[ \t]*$")

_REGISTRY_ENTRY_RE = re.compile(
    r"(?<![A-Za-z0-9_])([A-Z0-9]{6,})[ \t]+"
    r"([A-Za-z][A-Za-z0-9]*(?:_[A-Za-z0-9]+)+|[A-Z]{3,})(?![A-Za-z0-9_])"
)
_REGISTRY_LINE_RE = re.compile(r"^([A-Z0-9]{6,})\s+([A-Za-z][A-Za-z0-9_]*)$")

_DIAGNOSIS_REQUIREMENT_RE = re.compile(
    rf"({DIAGNOSIS_CODE_TOKEN})[ \t]+([^:\n•]+?)[ \t]*:[ \t]*"
    rf"({SERVICE_CODE_TOKEN})[ \t]*([^\n•]*)"
)

_MUTUAL_EXCLUSION_RE = re.compile(
    rf"({DIAGNOSIS_CODE_TOKEN})[ \t]+([^\n•]*?)[ \t]*(?i:cannot\s+co-?exist\s+with)"
    rf"[ \t]+({DIAGNOSIS_CODE_TOKEN})[ \t]*([^\n•]*)"
)


# ============================================================================
# Encounter type restrictions
# ============================================================================


def _encounter_block(text: str, encounter_type: EncounterType) -> str | None:
    heading = _ENCOUNTER_HEADINGS[encounter_type]
    other = _ENCOUNTER_HEADINGS[encounter_type.opposite]
    match = re.search(
        rf"{heading}:?(.*?)(?={other}|\n[ \t]*[A-Z]\.[ \t]|\Z)",
        text,
        re.IGNORECASE | re.DOTALL,
    )
    return match.group(1) if match else None


def parse_encounter_rules(text: str) -> list[EncounterRule]:
    rules: list[EncounterRule] = []
    for encounter_type in EncounterType:
        block = _encounter_block(text, encounter_type)
        if block is None:
            continue
        services = unique_by(
            (
                ServiceEntry(code=match.group(1), description=match.group(2).strip())
                for match in _SERVICE_ENTRY_RE.finditer(block)
            ),
            key=lambda service: service.code,
        )
        if services:
            rules.append(
                EncounterRule(encounter_type=encounter_type, services=tuple(services))
            )
    return rules


def encounter_rules_from_section(document: SegmentedDocument) -> list[EncounterRule]:
    return parse_encounter_rules(document.section(ENCOUNTER_SECTION))


def encounter_rules_from_document(document: SegmentedDocument) -> list[EncounterRule]:
    return parse_encounter_rules(document.text)


# ============================================================================
# Facility type restrictions and facility registry
# ============================================================================


def _split_facility_section(section: str) -> tuple[str, str | None]:
    """Split section B into its facility-type part and its registry part."""
    match = _REGISTRY_HEADING_RE.search(section)
    if not match:
        return section, None
    return section[: match.start()], section[match.end() :]


def _facility_rules_from_mapping(mapping: dict[str, list[str]]) -> list[FacilityTypeRule]:
    return [
        FacilityTypeRule(facility_type=label, services=tuple(sorted(set(codes))))
        for label, codes in mapping.items()
        if codes
    ]


def facility_rules_by_pattern(document: SegmentedDocument) -> list[FacilityTypeRule]:
    """Primary pass: ``LABEL: SRV1001, SRV1002`` entries, wrapping allowed."""
    text, _ = _split_facility_section(document.section(FACILITY_SECTION))
    mapping: dict[str, list[str]] = {}
    for match in _FACILITY_RULE_RE.finditer(text):
        label = match.group(1)
        if is_service_code(label):
            continue
        mapping.setdefault(label, []).extend(_SERVICE_CODE_RE.findall(match.group(2)))
    return _facility_rules_from_mapping(mapping)


def facility_rules_by_line(document: SegmentedDocument) -> list[FacilityTypeRule]:
    """Fallback pass: a label line opens a facility, code-only lines extend it."""
    text, _ = _split_facility_section(document.section(FACILITY_SECTION))
    mapping: dict[str, list[str]] = {}
    current: str | None = None
    for raw_line in text.splitlines():
        line = strip_bullet(raw_line)
        codes = _SERVICE_CODE_RE.findall(line)
        code_match = _SERVICE_CODE_RE.search(line)
        prefix = line[: code_match.start()] if code_match else line
        label_match = _FALLBACK_LABEL_RE.match(prefix.strip())
        if label_match and label_match.group(1).strip():
            current = re.sub(r"\s+", "_", label_match.group(1).strip())
            mapping.setdefault(current, [])
        elif not codes or prefix.strip():
            current = None
            continue
        if current is not None:
            mapping[current].extend(codes)
    return _facility_rules_from_mapping(mapping)


def registry_by_pattern(document: SegmentedDocument) -> list[FacilityRegistryEntry]:
    """Primary pass over the "Facility Registry" block of section B."""
    section = document.section(FACILITY_SECTION)
    _, registry = _split_facility_section(section)
    text = registry if registry is not None else section
    entries = [
        FacilityRegistryEntry(facility_id=match.group(1), facility_type=match.group(2))
        for match in _REGISTRY_ENTRY_RE.finditer(text)
        if not is_service_code(match.group(1))
    ]
    return unique_by(entries, key=lambda entry: entry.facility_id)


def registry_by_line(document: SegmentedDocument) -> list[FacilityRegistryEntry]:
    """Fallback pass: any ``IDENTIFIER FACILITY_TYPE`` line in the document."""
    entries: list[FacilityRegistryEntry] = []
    for raw_line in document.text.splitlines():
        match = _REGISTRY_LINE_RE.match(strip_bullet(raw_line))
        if not match:
            continue
        facility_id, facility_type = match.groups()
        if is_service_code(facility_id):
            continue
        if "_" not in facility_type and not any(ch.isdigit() for ch in facility_id):
            continue
        entries.append(
            FacilityRegistryEntry(facility_id=facility_id, facility_type=facility_type)
        )
    return unique_by(entries, key=lambda entry: entry.facility_id)


# ============================================================================
# Diagnosis-driven requirements and mutual exclusions
# ============================================================================


def parse_diagnosis_requirements(text: str) -> list[DiagnosisRequirement]:
    requirements = [
        DiagnosisRequirement(
            diagnosis_code=match.group(1),
            diagnosis_name=match.group(2).strip(),
            required_service_code=match.group(3),
            service_name=match.group(4).strip(),
        )
        for match in _DIAGNOSIS_REQUIREMENT_RE.finditer(text)
    ]
    return unique_by(
        requirements,
        key=lambda rule: (rule.diagnosis_code, rule.required_service_code),
    )


def parse_mutual_exclusions(text: str) -> list[MutualExclusionRule]:
    rules = [
        MutualExclusionRule(
            code_a=match.group(1),
            name_a=match.group(2).strip(),
            code_b=match.group(3),
            name_b=match.group(4).strip(),
        )
        for match in _MUTUAL_EXCLUSION_RE.finditer(text)
        if match.group(1) != match.group(3)
    ]
    return unique_by(rules, key=lambda rule: rule.codes)


def diagnosis_requirements_from_section(
    document: SegmentedDocument,
) -> list[DiagnosisRequirement]:
    return parse_diagnosis_requirements(document.section(DIAGNOSIS_SECTION))


def diagnosis_requirements_from_document(
    document: SegmentedDocument,
) -> list[DiagnosisRequirement]:
    return parse_diagnosis_requirements(document.text)


def mutual_exclusions_from_section(
    document: SegmentedDocument,
) -> list[MutualExclusionRule]:
    return parse_mutual_exclusions(document.section(EXCLUSION_SECTION))


def mutual_exclusions_from_document(
    document: SegmentedDocument,
) -> list[MutualExclusionRule]:
    return parse_mutual_exclusions(document.text)


ENCOUNTER_CHAIN: StrategyChain[EncounterRule] = StrategyChain(
    name="encounter_rules",
    strategies=(encounter_rules_from_section, encounter_rules_from_document),
)
FACILITY_TYPE_CHAIN: StrategyChain[FacilityTypeRule] = StrategyChain(
    name="facility_type_rules",
    strategies=(facility_rules_by_pattern, facility_rules_by_line),
)
REGISTRY_CHAIN: StrategyChain[FacilityRegistryEntry] = StrategyChain(
    name="facility_registry",
    strategies=(registry_by_pattern, registry_by_line),
)
DIAGNOSIS_REQUIREMENT_CHAIN: StrategyChain[DiagnosisRequirement] = StrategyChain(
    name="diagnosis_requirements",
    strategies=(diagnosis_requirements_from_section, diagnosis_requirements_from_document),
)
MUTUAL_EXCLUSION_CHAIN: StrategyChain[MutualExclusionRule] = StrategyChain(
    name="mutual_exclusions",
    strategies=(mutual_exclusions_from_section, mutual_exclusions_from_document),
)


def extract_medical_rules(text: str) -> MedicalRuleSet:
    """Extract a ``MedicalRuleSet`` from the text of a medical rules document."""
    clean_text = normalize_text(text)
    sections = segment_sections(clean_text, MEDICAL_ANCHORS)
    document = SegmentedDocument(text=clean_text, sections=sections)

    missing = [anchor.label for anchor in MEDICAL_ANCHORS if anchor.label not in sections]
    if missing:
        logger.warning(f"Medical rules document is missing sections: {', '.join(missing)}")

    head = preamble(clean_text, MEDICAL_ANCHORS)
    rule_set = MedicalRuleSet(
        title=document_title(head, _TITLE_RE),
        framing=document_framing(head),
        sections=dict(sections),
        encounter_rules=tuple(ENCOUNTER_CHAIN.extract(document)),
        facility_type_rules=tuple(FACILITY_TYPE_CHAIN.extract(document)),
        facility_registry=tuple(REGISTRY_CHAIN.extract(document)),
        diagnosis_requirements=tuple(DIAGNOSIS_REQUIREMENT_CHAIN.extract(document)),
        mutual_exclusions=tuple(MUTUAL_EXCLUSION_CHAIN.extract(document)),
    )

    unmatched = rule_set.unmatched_facility_types
    if unmatched:
        logger.warning(
            f"Facility registry references types without a facility rule: {', '.join(unmatched)}"
        )

    logger.info(
        f"Extracted medical rules: {len(rule_set.encounter_rules)} encounter, "
        f"{len(rule_set.facility_type_rules)} facility type, "
        f"{len(rule_set.facility_registry)} registry, "
        f"{len(rule_set.diagnosis_requirements)} diagnosis requirement, "
        f"{len(rule_set.mutual_exclusions)} exclusion rule(s)"
    )
    return rule_set
