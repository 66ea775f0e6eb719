"""Core business logic.

Modules:
- catalog: Skill areas, exercise types, schema ids, CEFR band traits
- leveling: Bands and the score-driven leveling rule
- payloads: Typed exercise payloads and their validators
- stores: Store protocols and the records they exchange
- content_generator: LLM-backed content generation
- selector: Content selection and score reporting
"""

__all__ = [
    "catalog",
    "leveling",
    "payloads",
    "stores",
    "content_generator",
    "selector",
]
