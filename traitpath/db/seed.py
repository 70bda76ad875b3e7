"""
Load catalog reference data (and optional demo conversations) from JSON.

File shape:
    {
      "skills": [{"skill_id", "name", "category", "parent_skill_id", "is_active"}],
      "trait_patterns": [
        {"pattern_key", "trait_type", "description",
         "skill_mappings": [...], "development_stages": [...]}
      ],
      "conversations": [
        {"conversation_id", "clerk_id", "scenario_info",
         "data_collection_results", "analysis"}
      ]
    }

Skills and patterns are upserted by natural key; a pattern's mappings and
stage rules are replaced wholesale.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from loguru import logger
from sqlalchemy import select
from sqlalchemy.orm import Session

from traitpath.core.errors import ConfigurationError
from traitpath.db.models import (
    Skill,
    TraitDevelopmentStage,
    TraitPatternRow,
    TraitSkillMapping,
    UserConversation,
)


@dataclass
class SeedSummary:
    skills: int = 0
    patterns: int = 0
    mappings: int = 0
    stages: int = 0
    conversations: int = 0


def load_catalog_file(session: Session, path: str | Path) -> SeedSummary:
    """Read a catalog JSON file and write it through the session."""
    path = Path(path)
    try:
        with open(path, encoding="utf-8") as f:
            data = json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        raise ConfigurationError(f"Cannot read catalog file {path}: {e}") from e

    if not isinstance(data, dict):
        raise ConfigurationError(f"Catalog file {path} must contain a JSON object")

    summary = load_catalog_data(session, data)
    logger.info(
        f"Seeded {summary.skills} skills, {summary.patterns} patterns "
        f"({summary.mappings} mappings, {summary.stages} stage rules), "
        f"{summary.conversations} conversations from {path}"
    )
    return summary


def load_catalog_data(session: Session, data: dict[str, Any]) -> SeedSummary:
    summary = SeedSummary()

    # Rows first, parent links second, so the self-referencing key always resolves
    rows = [(_upsert_skill(session, entry), entry) for entry in data.get("skills", [])]
    session.flush()
    for skill, entry in rows:
        skill.parent_skill_id = entry.get("parent_skill_id")
        summary.skills += 1
    session.flush()

    for entry in data.get("trait_patterns", []):
        pattern = _upsert_pattern(session, entry)
        pattern.skill_mappings = [
            _mapping_row(pattern.pattern_key, m) for m in entry.get("skill_mappings", [])
        ]
        pattern.development_stages = [
            _stage_row(pattern.pattern_key, d) for d in entry.get("development_stages", [])
        ]
        summary.patterns += 1
        summary.mappings += len(pattern.skill_mappings)
        summary.stages += len(pattern.development_stages)

    for entry in data.get("conversations", []):
        _upsert_conversation(session, entry)
        summary.conversations += 1

    session.flush()
    return summary


def _upsert_skill(session: Session, entry: dict[str, Any]) -> Skill:
    try:
        skill_id = int(entry["skill_id"])
        name = entry["name"]
    except (KeyError, TypeError, ValueError) as e:
        raise ConfigurationError(f"Invalid skill entry {entry!r}") from e

    skill = session.get(Skill, skill_id)
    if skill is None:
        skill = Skill(skill_id=skill_id, name=name)
        session.add(skill)
    skill.name = name
    skill.description = entry.get("description")
    skill.category = entry.get("category")
    skill.is_active = bool(entry.get("is_active", True))
    return skill


def _upsert_pattern(session: Session, entry: dict[str, Any]) -> TraitPatternRow:
    try:
        key = entry["pattern_key"]
        trait_type = entry["trait_type"]
    except KeyError as e:
        raise ConfigurationError(f"Trait pattern entry missing {e}") from e

    pattern = session.scalars(
        select(TraitPatternRow).where(TraitPatternRow.pattern_key == key)
    ).first()
    if pattern is None:
        pattern = TraitPatternRow(pattern_key=key, trait_type=trait_type)
        session.add(pattern)
    pattern.trait_type = trait_type
    pattern.description = entry.get("description")
    return pattern


def _mapping_row(pattern_key: str, m: dict[str, Any]) -> TraitSkillMapping:
    try:
        return TraitSkillMapping(
            skill_id=int(m["skill_id"]),
            importance=float(m["importance"]),
            role=m.get("role", "primary"),
            development_order=int(m.get("development_order", 1)),
            indicators=list(m.get("indicators", [])),
            practice_areas=list(m.get("practice_areas", [])),
            prerequisites=[int(p) for p in m.get("prerequisites", [])],
        )
    except (KeyError, TypeError, ValueError) as e:
        raise ConfigurationError(f"Invalid skill mapping in pattern {pattern_key}: {m!r}") from e


def _stage_row(pattern_key: str, d: dict[str, Any]) -> TraitDevelopmentStage:
    try:
        return TraitDevelopmentStage(
            skill_id=int(d["skill_id"]),
            stage_from=d["stage_from"],
            stage_to=d["stage_to"],
            readiness_score=float(d.get("readiness_score", 0.5)),
            prerequisites=[int(p) for p in d.get("prerequisites", [])],
            learning_focus=list(d.get("learning_focus", [])),
        )
    except (KeyError, TypeError, ValueError) as e:
        raise ConfigurationError(f"Invalid development stage in pattern {pattern_key}: {d!r}") from e


def _upsert_conversation(session: Session, entry: dict[str, Any]) -> UserConversation:
    try:
        conversation_id = entry["conversation_id"]
        clerk_id = entry["clerk_id"]
    except KeyError as e:
        raise ConfigurationError(f"Conversation entry missing {e}") from e

    conversation = session.scalars(
        select(UserConversation).where(UserConversation.conversation_id == conversation_id)
    ).first()
    if conversation is None:
        conversation = UserConversation(conversation_id=conversation_id, clerk_id=clerk_id)
        session.add(conversation)
    conversation.clerk_id = clerk_id
    conversation.scenario_info = entry.get("scenario_info")
    conversation.data_collection_results = entry.get("data_collection_results")
    conversation.analysis = entry.get("analysis")
    return conversation
