"""
Star-Allele Notation Parser

Grammar (case-insensitive, whitespace tolerant):

    diplotype := allele [ "/" allele ]
    allele    := "*" ident [ copies ]
    ident     := digit+ [ letter+ digit* ]      e.g. 4, 2A, 28, 3C
    copies    := "x" ( "N" | digit+ )           gene duplication, e.g. *1xN, *2x3

Text outside allele tokens is ignored, so "CYP2D6 genotype: *4/*4" and
"*4/*4 (reported 2024/05/01)" parse; a "/" counts only between two alleles.
A lone allele is read as heterozygous with the reference allele.
Three or more alleles, or two alleles not joined by a single "/", do not parse.
"""

import re
from dataclasses import dataclass
from typing import Optional

REFERENCE_ALLELE = "*1"

# ident letters exclude X so "*1XN" splits into allele "1" + copies "N"
_TOKEN_RE = re.compile(
    r"\*\s*(?P<ident>[0-9]+(?:[A-WYZ]+[0-9]*)?)(?:\s*[X×]\s*(?P<copies>N|[0-9]+))?"
    r"|(?P<sep>/)"
)


@dataclass(frozen=True)
class StarAllele:
    name: str
    copies: int = 1
    copy_label: Optional[str] = None

    def __str__(self) -> str:
        if self.copy_label:
            return f"{self.name}x{self.copy_label}"
        return self.name


@dataclass(frozen=True)
class Diplotype:
    first: StarAllele
    second: StarAllele
    reference_inferred: bool = False

    @property
    def notation(self) -> str:
        return f"{self.first}/{self.second}"

    def __str__(self) -> str:
        return self.notation


def _parse_allele(match: "re.Match", duplication_copies: int) -> StarAllele:
    label = match.group("copies")
    if label is None:
        return StarAllele(name=f"*{match.group('ident')}")
    copies = duplication_copies if label == "N" else int(label)
    return StarAllele(name=f"*{match.group('ident')}", copies=copies, copy_label=label)


def parse_star_alleles(
    text: str,
    duplication_copies: int = 2,
    reference_allele: str = REFERENCE_ALLELE
) -> Optional[Diplotype]:
    """
    Parse the star-allele diplotype out of free text.

    Args:
        text: Text following a gene token (e.g., " *4/*4", "*1xN/*1")
        duplication_copies: Copy count assumed for "xN"
        reference_allele: Partner allele for a lone allele

    Returns:
        Diplotype, or None when the text holds no well-formed notation
    """
    if not isinstance(text, str):
        return None

    tokens = []
    for match in _TOKEN_RE.finditer(text.upper()):
        if match.group("sep"):
            tokens.append(None)
        else:
            tokens.append(_parse_allele(match, duplication_copies))

    # A separator only joins the allele pair; any other "/" is surrounding prose
    start = next((i for i, token in enumerate(tokens) if token is not None), None)
    if start is None:
        return None

    first, second = tokens[start], None
    rest = tokens[start + 1:]
    if len(rest) >= 2 and rest[0] is None and rest[1] is not None:
        second, rest = rest[1], rest[2:]

    if any(token is not None for token in rest):
        return None

    if second is None:
        return Diplotype(
            first=StarAllele(name=reference_allele),
            second=first,
            reference_inferred=True,
        )
    return Diplotype(first=first, second=second)
