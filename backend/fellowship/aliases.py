"""Static per-stage alias tables for questionnaire answer keys.

Submissions were stored under several generations of field names. Each table
below lists, per canonical key, every raw key that has been observed for that
question. Lookups are exact: a raw key that is not listed is ignored rather
than guessed at.
"""

from __future__ import annotations

from fellowship.stages import Stage, canonical_keys, other_stage


ALIAS_TABLES: dict[Stage, dict[str, tuple[str, ...]]] = {
    Stage.IDEA: {
        "ideaDescription": ("idea_description", "idea"),
        "problemSolved": ("problem_solved", "problemStatement", "problem_statement", "problem"),
        "targetAudience": ("target_audience", "whoseProblem", "whose_problem", "target"),
        "solutionApproach": ("solution_approach", "howSolveProblem", "how_solve_problem", "solution"),
        "monetizationStrategy": (
            "monetization_strategy",
            "monetizationPlan",
            "monetization_plan",
            "howMakeMoney",
            "how_make_money",
            "revenue",
        ),
        "customerAcquisition": ("customer_acquisition", "acquireCustomers", "acquire_customers", "customers"),
        "competitors": ("competitorAnalysis", "competitor_analysis", "competition"),
        "developmentApproach": (
            "development_approach",
            "productDevelopment",
            "product_development",
            "development",
        ),
        "teamInfo": ("team_info", "teamComposition", "team_composition", "teamRoles", "team_roles", "team"),
        "timeline": ("whenProceed", "when_proceed"),
    },
    Stage.EARLY_REVENUE: {
        "tell_us_about_idea": ("tellUsAboutIdea", "idea"),
        "early_revenue_problem": ("earlyRevenueProblem", "problemStatement", "problem_statement", "problem"),
        "early_revenue_target": ("earlyRevenueTarget", "whoseProblem", "whose_problem", "target"),
        "early_revenue_how_solve": (
            "earlyRevenueHowSolve",
            "howSolveProblem",
            "how_solve_problem",
            "solution",
        ),
        "early_revenue_monetization": ("earlyRevenueMonetization", "howMakeMoney", "how_make_money", "revenue"),
        "early_revenue_customers": (
            "earlyRevenueCustomers",
            "acquireCustomers",
            "acquire_customers",
            "customers",
        ),
        "early_revenue_competitors": ("earlyRevenueCompetitors", "competition"),
        "early_revenue_development": (
            "earlyRevenueDevelopment",
            "productDevelopment",
            "product_development",
            "development",
        ),
        "early_revenue_team": ("earlyRevenueTeam", "teamRoles", "team_roles", "team"),
        "early_revenue_timeline": ("earlyRevenueTimeline", "whenProceed", "when_proceed"),
    },
}


def _build_lookup(stage: Stage) -> dict[str, str]:
    lookup: dict[str, str] = {}
    for canonical, aliases in ALIAS_TABLES[stage].items():
        for raw_key in (canonical, *aliases):
            existing = lookup.get(raw_key)
            if existing is not None and existing != canonical:
                raise RuntimeError(
                    f"Alias '{raw_key}' maps to both '{existing}' and '{canonical}' in the {stage.value} table."
                )
            lookup[raw_key] = canonical
    return lookup


_LOOKUPS: dict[Stage, dict[str, str]] = {stage: _build_lookup(stage) for stage in Stage}


def resolve_key(raw_key: object, stage: Stage) -> str | None:
    if not isinstance(raw_key, str):
        return None
    # Another stage's canonical key can never answer this stage's question.
    if raw_key in canonical_keys(other_stage(stage)):
        return None
    canonical = _LOOKUPS[stage].get(raw_key)
    if canonical is None or canonical not in canonical_keys(stage):
        return None
    return canonical


def aliases_for(canonical_key: str, stage: Stage) -> tuple[str, ...]:
    aliases = ALIAS_TABLES[stage].get(canonical_key)
    if aliases is None:
        return ()
    return (canonical_key, *(alias for alias in aliases if alias != canonical_key))


def is_known_key(raw_key: object) -> bool:
    return any(resolve_key(raw_key, stage) is not None for stage in Stage)


def exclusive_stage(raw_key: object) -> Stage | None:
    """Return the only stage that accepts ``raw_key``, or None if zero or both do."""
    accepted = [stage for stage in Stage if resolve_key(raw_key, stage) is not None]
    if len(accepted) == 1:
        return accepted[0]
    return None

