"""
PGx Phenotype Service

Maps free-text genotype observations (e.g., "CYP2D6 *4/*4") to metabolizer
phenotypes, and looks up drug-gene dosing guidance for the called phenotypes.

Best-effort classifier: unknown genes, unknown alleles and malformed notation
are skipped, never raised.
"""

import logging
import re
from typing import Dict, List, Any, Optional, Iterable, Union, Mapping

from oncodose.schemas.pgx import (
    GenotypeObservation, GenePhenotype, Phenotype,
    PGxRecommendation, PGxGuidanceResponse,
)
from oncodose.services.rule_tables import load_pgx_rules
from oncodose.services.star_allele import Diplotype, parse_star_alleles, REFERENCE_ALLELE

logger = logging.getLogger(__name__)

# Float sums of allele values (0.25, 0.5, ...) compared against bucket bounds
_SCORE_TOLERANCE = 1e-9

ObservationLike = Union[GenotypeObservation, Mapping[str, Any]]


def _text_of(value: Any) -> str:
    """Flatten strings out of plain text or FHIR CodeableConcept-like dicts/lists."""
    if isinstance(value, str):
        return value
    if isinstance(value, Mapping):
        return " ".join(_text_of(v) for v in value.values())
    if isinstance(value, (list, tuple)):
        return " ".join(_text_of(v) for v in value)
    return ""


def _observation_text(observation: ObservationLike) -> str:
    if isinstance(observation, GenotypeObservation):
        code, value = observation.code, observation.value_string
    elif isinstance(observation, Mapping):
        code = observation.get("code")
        value = observation.get("valueString") or observation.get("value_string")
    else:
        return ""
    return f"{_text_of(code)} {_text_of(value)}".upper()


class PGxPhenotypeService:
    """
    Table-driven phenotype classifier.

    Each gene has allele function values and ordered activity-score
    thresholds; the first threshold whose max is >= the score wins.
    """

    def __init__(self, rules: Optional[Dict[str, Any]] = None):
        self.rules = rules if rules is not None else load_pgx_rules()
        self.genes: Dict[str, Dict[str, Any]] = {
            gene.upper(): table for gene, table in self.rules.get("genes", {}).items()
        }
        self.duplication_copies = int(self.rules.get("duplication_copies", 2))
        self.reference_allele = self.rules.get("reference_allele", REFERENCE_ALLELE)

        # Longest symbols first so alternation never stops at a prefix
        symbols = sorted(self.genes, key=len, reverse=True)
        self._gene_re = (
            re.compile(r"(?<![A-Z0-9])(" + "|".join(map(re.escape, symbols)) + r")(?![0-9])")
            if symbols else None
        )

    def is_known_gene(self, gene: str) -> bool:
        return gene.upper() in self.genes

    def classify_diplotype(self, gene: str, diplotype: Diplotype) -> Optional[GenePhenotype]:
        """
        Classify a parsed diplotype for one gene.

        Returns:
            GenePhenotype, or None for an unknown gene or allele
        """
        table = self.genes.get(gene.upper())
        if table is None:
            return None

        allele_values = table.get("alleles", {})
        score = 0.0
        for allele in (diplotype.first, diplotype.second):
            value = allele_values.get(allele.name)
            if value is None:
                logger.debug(f"Unknown {gene} allele {allele.name}; skipping")
                return None
            score += value * allele.copies

        # Notes are keyed by notation in either allele order
        notes = table.get("diplotype_notes", {})
        note = notes.get(diplotype.notation) or notes.get(f"{diplotype.second}/{diplotype.first}")

        for threshold in table.get("thresholds", []):
            upper = threshold.get("max")
            if upper is None or score <= upper + _SCORE_TOLERANCE:
                return GenePhenotype(
                    gene=gene.upper(),
                    phenotype=Phenotype(threshold["phenotype"]),
                    diplotype=diplotype.notation,
                    activity_score=score,
                    note=note,
                )
        return None

    def classify_text(self, gene: str, text: str) -> Optional[GenePhenotype]:
        """Parse star-allele text and classify it for the given gene."""
        diplotype = parse_star_alleles(text, self.duplication_copies, self.reference_allele)
        if diplotype is None:
            return None
        return self.classify_diplotype(gene, diplotype)

    def map_observations_to_phenotypes(
        self,
        observations: Optional[Iterable[ObservationLike]]
    ) -> List[GenePhenotype]:
        """
        Map genotype observations to one phenotype per gene.

        Args:
            observations: {code, valueString} items (models or plain dicts)

        Returns:
            GenePhenotype list in order of first appearance; empty when nothing matches
        """
        if not observations or self._gene_re is None:
            return []

        called: Dict[str, GenePhenotype] = {}
        for observation in observations:
            text = _observation_text(observation)
            matches = list(self._gene_re.finditer(text))

            # Each gene owns the text up to the next gene token
            for i, match in enumerate(matches):
                gene = match.group(1)
                end = matches[i + 1].start() if i + 1 < len(matches) else len(text)
                result = self.classify_text(gene, text[match.end():end])

                if result is None:
                    logger.debug(f"No phenotype call for {gene} in '{text.strip()}'")
                    continue
                if gene in called:
                    if called[gene].phenotype != result.phenotype:
                        logger.info(
                            f"Conflicting {gene} observation ({result.diplotype}) ignored; "
                            f"keeping {called[gene].diplotype}"
                        )
                    continue
                called[gene] = result

        return list(called.values())

    # ------------------------------------------------------------------
    # Drug-gene guidance
    # ------------------------------------------------------------------

    def _guidance_rules_for(self, drug: str) -> List[Dict[str, Any]]:
        drug_lower = drug.strip().lower()
        return [
            rule for rule in self.rules.get("guidance", [])
            if drug_lower == rule["drug"].lower()
            or drug_lower in (alias.lower() for alias in rule.get("aliases", []))
        ]

    def get_pgx_recommendations(self, drug: str, phenotypes: List[GenePhenotype]) -> List[PGxRecommendation]:
        recommendations = []
        by_gene = {p.gene: p for p in phenotypes}

        for rule in self._guidance_rules_for(drug):
            called = by_gene.get(rule["gene"].upper())
            if called is None:
                continue
            entry = rule.get("phenotypes", {}).get(called.phenotype.value)
            if entry is None:
                continue
            recommendations.append(PGxRecommendation(
                gene=called.gene,
                drug=drug,
                phenotype=called.phenotype,
                recommendation=entry["recommendation"],
                dose_modification=entry.get("dose_modification"),
                adjustment_factor=entry.get("adjustment_factor"),
                alternative=entry.get("alternative"),
                evidence=entry.get("evidence"),
            ))

        return recommendations

    def get_pgx_guidance(
        self,
        drug: str,
        observations: Optional[Iterable[ObservationLike]]
    ) -> PGxGuidanceResponse:
        """
        Phenotype the observations, then look up guidance for the drug.

        Returns:
            PGxGuidanceResponse; notes explain an empty recommendation list
        """
        phenotypes = self.map_observations_to_phenotypes(observations)
        recommendations = self.get_pgx_recommendations(drug, phenotypes)

        notes = []
        if not phenotypes:
            notes.append("No pharmacogene phenotype could be called from the observations")
        elif not self._guidance_rules_for(drug):
            notes.append(f"No pharmacogenomic guideline available for {drug}")
        elif not recommendations:
            notes.append(f"Standard dosing: no actionable phenotype for {drug}")

        contraindicated = any(r.adjustment_factor == 0.0 for r in recommendations)

        logger.info(
            f"PGx guidance: {drug} -> {len(phenotypes)} phenotype(s), "
            f"{len(recommendations)} recommendation(s), contraindicated={contraindicated}"
        )

        return PGxGuidanceResponse(
            drug=drug,
            phenotypes=phenotypes,
            recommendations=recommendations,
            contraindicated=contraindicated,
            notes=notes,
        )


# Singleton instance
_pgx_phenotype_service: Optional[PGxPhenotypeService] = None


def get_pgx_phenotype_service() -> PGxPhenotypeService:
    """Get singleton PGx phenotype service instance."""
    global _pgx_phenotype_service
    if _pgx_phenotype_service is None:
        _pgx_phenotype_service = PGxPhenotypeService()
    return _pgx_phenotype_service


def map_observations_to_phenotypes(observations: Optional[Iterable[ObservationLike]]) -> List[GenePhenotype]:
    """Module-level convenience wrapper around the singleton service."""
    return get_pgx_phenotype_service().map_observations_to_phenotypes(observations)
