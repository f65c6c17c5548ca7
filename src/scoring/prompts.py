# src/scoring/prompts.py — v1
"""Prompt text for the similarity-scoring oracle, per search context."""

from __future__ import annotations

ROLES = {
    "retail": (
        "You are a retail market analyst specializing in product discovery. "
        "You analyze real marketplace listings to determine if similar products "
        "already exist commercially."
    ),
    "web": (
        "You are a prior-art researcher. You analyze real web search results "
        "(product pages, articles, crowdfunding campaigns, prototypes) to determine "
        "whether an idea has already been built or published."
    ),
}

SOURCE_LABELS = {"retail": "marketplace listings", "web": "web search results"}

TASK = (
    "Given an invention description and actual {source_label}, analyze how novel "
    "the invention is compared to what already exists."
)

HOW_TO = """\
1. Review the invention details (name, description, problem it solves, key features)
2. Analyze each candidate to determine similarity to the invention
3. For each candidate, assess:
   - Feature overlap (how many key features are shared)
   - Problem-solving approach (does it solve the same problem?)
   - Target use case (is it for the same audience/purpose?)
4. Assign similarity scores (0-1) to each candidate:
   - 0.8-1.0: Essentially the same, near-identical
   - 0.6-0.8: Very similar, solves same problem similarly
   - 0.4-0.6: Moderately similar, some overlap
   - 0.2-0.4: Somewhat related, different approach
   - 0.0-0.2: Barely related, only superficial similarity
5. Determine overall novelty based on the highest similarity found
"""

OUTPUT = """\
Return ONLY valid JSON (no markdown, no explanation) with this structure:
{
  "is_novel": boolean,
  "confidence": number,
  "item_analyses": [
    {"item_id": "string (from input)", "similarity_score": number, "analysis": "1-2 sentence explanation"}
  ],
  "summary": "2-3 sentences on what already exists",
  "truth_scores": {
    "objective_truth": number,
    "practical_truth": number,
    "completeness": number,
    "contextual_scope": number
  }
}"""

SYSTEM = (
    "You rate prior art against inventions. Base every score on the candidates "
    "provided; never invent products. Respond only with valid JSON."
)

TEMPLATE = """\
{role}

{task}

## How to Analyze:
{how_to}
## Invention to Check:
- Name: {invention_name}
- Description: {description}
- Problem Statement: {problem_statement}
- Target Audience: {target_audience}
- Key Features: {key_features}

## Candidates Found ({count} results):
{candidates}

{output}

Higher similarity scores mean the invention is LESS novel."""
