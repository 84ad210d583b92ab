"""Technical adjudication rule extraction.

Turns the text of a "Technical Adjudication & Submission Guide" into a
``TechnicalRuleSet``. The document has four numbered sections:

1) services requiring prior approval (table rows ending in YES/NO)
2) diagnosis codes requiring prior approval (same layout)
3) the paid amount threshold ("... > AED 250 requires prior approval ...")
4) ID and unique ID formatting requirements (bullet list)
"""

from __future__ import annotations

import logging
import re

from adjudication.rules.models import (
    DiagnosisApproval,
    IdFormatRules,
    IdPatternRule,
    PaidAmountThreshold,
    ServiceApproval,
    TechnicalRuleSet,
    UniqueIdSegment,
    UniqueIdStructureRule,
)

from .patterns import (
    BULLETS,
    DIAGNOSIS_CODE,
    SERVICE_CODE,
    UPPERCASE_ALNUM_PATTERN,
    strip_bullet,
)
from .segmenter import (
    document_framing,
    document_title,
    normalize_text,
    numbered_anchors,
    preamble,
    segment_sections,
    split_heading,
)
from .strategies import SegmentedDocument, StrategyChain, unique_by

logger = logging.getLogger(__name__)

TECHNICAL_ANCHORS = numbered_anchors(4)

SERVICE_APPROVAL_SECTION = "1"
DIAGNOSIS_APPROVAL_SECTION = "2"
THRESHOLD_SECTION = "3"
ID_FORMAT_SECTION = "4"

_TITLE_RE = re.compile(r"Technical Adjudication[^\n]*", re.IGNORECASE)

_SERVICE_ROW_RE = re.compile(rf"^({SERVICE_CODE})\s+(.+?)\s+((?i:yes|no))\.?$")
_DIAGNOSIS_ROW_RE = re.compile(rf"^({DIAGNOSIS_CODE})\s+(.+?)\s+((?i:yes|no))\.?$")

_AMOUNT = r"\d[\d,]*(?:\.\d+)?"
_THRESHOLD_RE = re.compile(rf"AED[ \t]*({_AMOUNT})|({_AMOUNT})[ \t]*AED")
_THRESHOLD_ANYWHERE_RE = re.compile(
    rf"paid[_ ]amount\w*\s*(?:>|exceeds?|over|above)\s*AED\s*({_AMOUNT})",
    re.IGNORECASE,
)
_SENTENCE_SPLIT_RE = re.compile(r"(?<=[.!?])\s+")

_UPPERCASE_RE = re.compile(r"upper\s*-?\s*case", re.IGNORECASE)
_UNIQUE_ID_RE = re.compile(r"unique[_ ]?id", re.IGNORECASE)
_UNIQUE_ID_STRUCTURE_RE = re.compile(r"unique[_ ]?id\s+structure", re.IGNORECASE)
_SEGMENT_RE = re.compile(r"\b(first|middle|last)[ \t]*(\d+)[ \t]*\(([^)]+)\)", re.IGNORECASE)

_FIELD_ALIASES = (
    ("national", "national_id"),
    ("member", "member_id"),
    ("facility", "facility_id"),
)

CANONICAL_UNIQUE_ID_SEGMENTS = (
    UniqueIdSegment(position="first", length=4, source_field="national_id"),
    UniqueIdSegment(position="middle", length=4, source_field="member_id"),
    UniqueIdSegment(position="last", length=4, source_field="facility_id"),
)


def _table_lines(text: str) -> list[str]:
    return [strip_bullet(line) for line in text.splitlines() if line.strip()]


# ============================================================================
# 1) and 2) approval tables
# ============================================================================


def parse_service_approvals(text: str) -> list[ServiceApproval]:
    approvals = []
    for line in _table_lines(text):
        match = _SERVICE_ROW_RE.match(line)
        if match:
            code, description, flag = match.groups()
            approvals.append(
                ServiceApproval(
                    code=code,
                    description=description.strip(),
                    approval_required=flag.upper() == "YES",
                )
            )
    return unique_by(approvals, key=lambda approval: approval.code)


def parse_diagnosis_approvals(text: str) -> list[DiagnosisApproval]:
    approvals = []
    for line in _table_lines(text):
        match = _DIAGNOSIS_ROW_RE.match(line)
        if match:
            code, name, flag = match.groups()
            approvals.append(
                DiagnosisApproval(
                    code=code,
                    name=name.strip(),
                    approval_required=flag.upper() == "YES",
                )
            )
    return unique_by(approvals, key=lambda approval: approval.code)


def service_approvals_from_section(document: SegmentedDocument) -> list[ServiceApproval]:
    return parse_service_approvals(document.section(SERVICE_APPROVAL_SECTION))


def service_approvals_from_document(document: SegmentedDocument) -> list[ServiceApproval]:
    return parse_service_approvals(document.text)


def diagnosis_approvals_from_section(
    document: SegmentedDocument,
) -> list[DiagnosisApproval]:
    return parse_diagnosis_approvals(document.section(DIAGNOSIS_APPROVAL_SECTION))


def diagnosis_approvals_from_document(
    document: SegmentedDocument,
) -> list[DiagnosisApproval]:
    return parse_diagnosis_approvals(document.text)


# ============================================================================
# 3) paid amount threshold
# ============================================================================


def _parse_amount(raw: str) -> float:
    return float(raw.replace(",", ""))


def _sentence_containing(text: str, position: int) -> str:
    offset = 0
    for sentence in _SENTENCE_SPLIT_RE.split(text):
        start = text.find(sentence, offset)
        end = start + len(sentence)
        if start <= position < end:
            return re.sub(r"\s+", " ", sentence).strip()
        offset = end
    return ""


def threshold_from_section(document: SegmentedDocument) -> list[PaidAmountThreshold]:
    _, body = split_heading(document.section(THRESHOLD_SECTION))
    match = _THRESHOLD_RE.search(body)
    if not match:
        return []
    raw_amount = match.group(1) or match.group(2)
    return [
        PaidAmountThreshold(
            amount=_parse_amount(raw_amount),
            description=_sentence_containing(body, match.start()),
        )
    ]


def threshold_from_document(document: SegmentedDocument) -> list[PaidAmountThreshold]:
    match = _THRESHOLD_ANYWHERE_RE.search(document.text)
    if not match:
        return []
    return [
        PaidAmountThreshold(
            amount=_parse_amount(match.group(1)),
            description=_sentence_containing(document.text, match.start()),
        )
    ]


# ============================================================================
# 4) ID formatting
# ============================================================================


def parse_requirements(text: str) -> list[str]:
    """Bullet-point requirement strings, or plain body lines when unbulleted."""
    _, body = split_heading(text)
    lines = [line.strip() for line in body.splitlines() if line.strip()]
    bulleted = [strip_bullet(line) for line in lines if line[0] in BULLETS]
    return bulleted or lines


def _uppercase_rule(lines: list[str]) -> list[IdPatternRule]:
    for line in lines:
        if _UPPERCASE_RE.search(line) and "alphanumeric" in line.lower():
            return [IdPatternRule(description=line, pattern=UPPERCASE_ALNUM_PATTERN)]
    return []


def uppercase_rule_from_section(document: SegmentedDocument) -> list[IdPatternRule]:
    return _uppercase_rule(parse_requirements(document.section(ID_FORMAT_SECTION)))


def uppercase_rule_from_document(document: SegmentedDocument) -> list[IdPatternRule]:
    return _uppercase_rule([strip_bullet(line) for line in document.text.splitlines()])


def _source_field(label: str) -> str:
    normalized = label.strip().lower()
    for alias, field_name in _FIELD_ALIASES:
        if alias in normalized:
            return field_name
    return re.sub(r"\W+", "_", normalized).strip("_")


def _separator(text: str) -> str:
    lowered = text.lower()
    if "underscore" in lowered:
        return "_"
    return "-"


def _structure_rule(text: str) -> list[UniqueIdStructureRule]:
    for line in text.splitlines():
        if not _UNIQUE_ID_RE.search(line):
            continue
        segments = tuple(
            UniqueIdSegment(
                position=position.lower(),
                length=int(length),
                source_field=_source_field(label),
            )
            for position, length, label in _SEGMENT_RE.findall(line)
        )
        if segments:
            return [
                UniqueIdStructureRule(
                    description=strip_bullet(line),
                    segments=segments,
                    separator=_separator(text),
                )
            ]
    return []


def structure_rule_from_section(
    document: SegmentedDocument,
) -> list[UniqueIdStructureRule]:
    return _structure_rule(document.section(ID_FORMAT_SECTION))


def structure_rule_from_document(
    document: SegmentedDocument,
) -> list[UniqueIdStructureRule]:
    return _structure_rule(document.text)


def canonical_structure_rule(
    document: SegmentedDocument,
) -> list[UniqueIdStructureRule]:
    """Last resort: the phrase is present but the slices could not be parsed."""
    match = _UNIQUE_ID_STRUCTURE_RE.search(document.text)
    if not match:
        return []
    line_start = document.text.rfind("\n", 0, match.start()) + 1
    line_end = document.text.find("\n", match.end())
    line = document.text[line_start : line_end if line_end != -1 else None]
    return [
        UniqueIdStructureRule(
            description=strip_bullet(line),
            segments=CANONICAL_UNIQUE_ID_SEGMENTS,
        )
    ]


SERVICE_APPROVAL_CHAIN: StrategyChain[ServiceApproval] = StrategyChain(
    name="service_approvals",
    strategies=(service_approvals_from_section, service_approvals_from_document),
)
DIAGNOSIS_APPROVAL_CHAIN: StrategyChain[DiagnosisApproval] = StrategyChain(
    name="diagnosis_approvals",
    strategies=(diagnosis_approvals_from_section, diagnosis_approvals_from_document),
)
THRESHOLD_CHAIN: StrategyChain[PaidAmountThreshold] = StrategyChain(
    name="paid_amount_threshold",
    strategies=(threshold_from_section, threshold_from_document),
)
UPPERCASE_RULE_CHAIN: StrategyChain[IdPatternRule] = StrategyChain(
    name="uppercase_id_rule",
    strategies=(uppercase_rule_from_section, uppercase_rule_from_document),
)
STRUCTURE_RULE_CHAIN: StrategyChain[UniqueIdStructureRule] = StrategyChain(
    name="unique_id_structure",
    strategies=(
        structure_rule_from_section,
        structure_rule_from_document,
        canonical_structure_rule,
    ),
)


def extract_technical_rules(text: str) -> TechnicalRuleSet:
    """Extract a ``TechnicalRuleSet`` from the text of a technical rules document."""
    clean_text = normalize_text(text)
    sections = segment_sections(clean_text, TECHNICAL_ANCHORS)
    document = SegmentedDocument(text=clean_text, sections=sections)

    missing = [anchor.label for anchor in TECHNICAL_ANCHORS if anchor.label not in sections]
    if missing:
        logger.warning(f"Technical rules document is missing sections: {', '.join(missing)}")

    thresholds = THRESHOLD_CHAIN.extract(document)
    uppercase = UPPERCASE_RULE_CHAIN.extract(document)
    structure = STRUCTURE_RULE_CHAIN.extract(document)

    head = preamble(clean_text, TECHNICAL_ANCHORS)
    rule_set = TechnicalRuleSet(
        title=document_title(head, _TITLE_RE),
        framing=document_framing(head),
        sections=dict(sections),
        service_approvals=tuple(SERVICE_APPROVAL_CHAIN.extract(document)),
        diagnosis_approvals=tuple(DIAGNOSIS_APPROVAL_CHAIN.extract(document)),
        paid_amount_threshold=thresholds[0] if thresholds else None,
        id_format=IdFormatRules(
            uppercase=uppercase[0] if uppercase else None,
            unique_id_structure=structure[0] if structure else None,
            requirements=tuple(parse_requirements(document.section(ID_FORMAT_SECTION))),
        ),
    )

    logger.info(
        f"Extracted technical rules: {len(rule_set.service_approvals)} service approval, "
        f"{len(rule_set.diagnosis_approvals)} diagnosis approval row(s), "
        f"threshold={'yes' if rule_set.paid_amount_threshold else 'no'}, "
        f"id rules={len(rule_set.id_format.requirements)}"
    )
    return rule_set
