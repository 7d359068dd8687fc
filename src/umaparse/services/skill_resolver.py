from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Sequence

from .fuzzy import CANDIDATE_SIMILARITY, is_candidate, normalize_text, similarity
from .skill_catalog import SkillCatalog, SkillPool
from .tiers import extract_tier_symbol, is_tier_compatible

logger = logging.getLogger("umaparse.skills")


@dataclass(frozen=True)
class SkillMatchConfig:
    threshold: float = 0.6
    exact_tier_bonus: float = 0.5
    compatible_tier_bonus: float = 0.3
    tier_mismatch_penalty: float = 0.2
    candidate_similarity: float = CANDIDATE_SIMILARITY


DEFAULT_CONFIG = SkillMatchConfig()


@dataclass(frozen=True)
class SkillMatch:
    skill_id: str
    name: str
    score: float
    base_score: float


def apply_tier_bonus(
    catalog_tier: str | None,
    parsed_tier: str | None,
    base_score: float,
    config: SkillMatchConfig = DEFAULT_CONFIG,
) -> float:
    if not catalog_tier or not parsed_tier:
        return base_score
    if catalog_tier == parsed_tier:
        # Exact tier match may push the score past 1.0.
        return base_score + config.exact_tier_bonus
    if is_tier_compatible(catalog_tier, parsed_tier):
        return min(1.0, base_score + config.compatible_tier_bonus)
    return max(0.0, base_score - config.tier_mismatch_penalty)


def resolve_skill_line(
    line: str,
    catalog: SkillCatalog,
    pool: SkillPool,
    config: SkillMatchConfig = DEFAULT_CONFIG,
) -> SkillMatch | None:
    normalized = normalize_text(line)
    parsed_tier = extract_tier_symbol(line)

    best: SkillMatch | None = None
    for entry in catalog.pool(pool):
        for name in entry.names:
            if not is_candidate(name.normalized, normalized, config.candidate_similarity):
                continue
            base = similarity(name.normalized, normalized)
            score = apply_tier_bonus(name.tier, parsed_tier, base, config)
            if score != base:
                logger.debug(
                    "tier adjustment line=%r name=%r tiers=%s/%s %.3f -> %.3f",
                    line,
                    name.display,
                    name.tier,
                    parsed_tier,
                    base,
                    score,
                )
            if best is None or score > best.score:
                best = SkillMatch(
                    skill_id=entry.skill_id,
                    name=name.display,
                    score=score,
                    base_score=base,
                )

    if best is None or best.score <= config.threshold:
        return None
    return best


def resolve_skill_matches(
    lines: Sequence[str],
    catalog: SkillCatalog,
    config: SkillMatchConfig = DEFAULT_CONFIG,
) -> list[SkillMatch | None]:
    """Match each line; the first line is the unique slot and searches only
    original uniques, every later line searches only the other pool."""
    matches: list[SkillMatch | None] = []
    for index, raw in enumerate(lines):
        line = (raw or "").strip()
        if not line:
            matches.append(None)
            continue
        pool = SkillPool.PRIMARY if index == 0 else SkillPool.SECONDARY
        match = resolve_skill_line(line, catalog, pool, config)
        if match is None:
            logger.info("no skill match line=%r pool=%s", line, pool.value)
        else:
            logger.info(
                "skill matched line=%r skill_id=%s name=%r score=%.3f pool=%s",
                line,
                match.skill_id,
                match.name,
                match.score,
                pool.value,
            )
        matches.append(match)
    return matches


def resolve_skills(
    lines: Sequence[str],
    catalog: SkillCatalog,
    config: SkillMatchConfig = DEFAULT_CONFIG,
) -> list[str]:
    return [
        match.skill_id
        for match in resolve_skill_matches(lines, catalog, config)
        if match is not None
    ]
