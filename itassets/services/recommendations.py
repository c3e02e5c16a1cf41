"""
AI recommendations for an asset.

Asks the configured LLM endpoint for three short assessments. Any failure on
that path (no key, HTTP error, no candidates, unparsable or incomplete JSON)
falls back to rule-based text derived from condition, complaints and age.
"""
import json
import re
from datetime import datetime, timezone
from typing import Dict, List, Optional

import httpx
import structlog
from sqlalchemy.orm import Session

from ..config import settings
from ..errors import ExternalCollaboratorError, NotFound
from ..models.models import Asset, AssetHistory, Complaint, MaintenanceSchedule, utcnow
from ..schemas.assets import AIRecommendation


logger = structlog.get_logger(__name__)

RECOMMENDATION_KEYS = ("usability_assessment", "maintenance_prediction", "replacement_recommendation")

_USABILITY_BY_CONDITION = {
    "NEW": "Excellent",
    "GOOD": "Good",
    "UNDER_REPAIR": "Currently impaired",
    "DAMAGED": "Poor",
}

_JSON_OBJECT = re.compile(r"\{.*\}", re.DOTALL)


def asset_age_days(asset: Asset, now: Optional[datetime] = None) -> int:
    now = now or utcnow()
    created_at = asset.created_at
    if created_at.tzinfo is None:
        created_at = created_at.replace(tzinfo=timezone.utc)
    return max(0, (now - created_at).days)


def fallback_recommendations(asset: Asset, total_complaints: int, urgent_complaints: int, age_days: int) -> AIRecommendation:
    usability = _USABILITY_BY_CONDITION.get(asset.condition, "Unknown")
    has_issues = urgent_complaints > 0 or asset.condition == "DAMAGED"

    if age_days > 365:
        maintenance = "Annual maintenance review recommended due to asset age."
    elif total_complaints > 2:
        maintenance = "Preventive maintenance recommended within 30 days due to complaint frequency."
    else:
        maintenance = "Standard maintenance schedule sufficient."

    if asset.condition == "DAMAGED":
        replacement = "Consider replacement due to damaged condition."
    elif age_days > 5 * 365:
        replacement = "Evaluate for replacement due to age (5+ years)."
    else:
        replacement = "No immediate replacement needed based on current condition and age."

    return AIRecommendation(
        usability_assessment=(
            f"{usability} operational status. "
            + ("Requires immediate attention due to reported issues." if has_issues else "Suitable for continued use.")
        ),
        maintenance_prediction=maintenance,
        replacement_recommendation=replacement,
    )


def build_prompt(
    asset: Asset,
    complaints: List[Complaint],
    history: List[AssetHistory],
    schedules: List[MaintenanceSchedule],
    age_days: int,
) -> str:
    urgent = sum(1 for c in complaints if c.status == "URGENT")
    completed = sum(1 for m in schedules if m.is_completed)
    condition_changes = [h for h in history if h.field_name == "condition"][:3]
    if condition_changes:
        changes_text = ", ".join(
            f"{h.old_value} -> {h.new_value} ({h.changed_at.strftime('%Y-%m-%d')})" for h in condition_changes
        )
    else:
        changes_text = "None"
    recent = "; ".join(f"{c.status}: {c.description[:100]}" for c in complaints[:3])

    return f"""As an asset management expert, analyze this asset and provide recommendations:

Asset Details:
- Name: {asset.name}
- Category: {asset.category}
- Current Condition: {asset.condition}
- Age: {age_days} days
- Owner: {asset.owner or 'Unassigned'}
- Description: {asset.description or 'No description'}

Usage Statistics:
- Total Complaints: {len(complaints)}
- Urgent Complaints: {urgent}
- Completed Maintenance: {completed}
- Pending Maintenance: {len(schedules) - completed}

Recent Condition Changes: {changes_text}

Recent Complaints: {recent}

Please provide exactly three assessments in JSON format:
{{
  "usability_assessment": "Brief assessment of current usability and operational status",
  "maintenance_prediction": "Prediction of maintenance needs with timeline",
  "replacement_recommendation": "Replacement recommendation with rationale and timeline"
}}

Keep each assessment concise (1-2 sentences) and actionable."""


def parse_recommendation_text(text: str) -> AIRecommendation:
    match = _JSON_OBJECT.search(text or "")
    if not match:
        raise ExternalCollaboratorError("llm", "no JSON object in response")
    try:
        data: Dict = json.loads(match.group(0))
    except json.JSONDecodeError as e:
        raise ExternalCollaboratorError("llm", f"unparsable JSON: {e}") from e
    if not isinstance(data, dict) or not all(isinstance(data.get(k), str) and data.get(k) for k in RECOMMENDATION_KEYS):
        raise ExternalCollaboratorError("llm", "incomplete recommendations")
    return AIRecommendation(**{k: data[k] for k in RECOMMENDATION_KEYS})


def request_llm_text(prompt: str, client: Optional[httpx.Client] = None) -> str:
    if not settings.llm_api_key:
        raise ExternalCollaboratorError("llm", "LLM_API_KEY is not configured")

    payload = {"contents": [{"parts": [{"text": prompt}]}]}
    owns_client = client is None
    client = client or httpx.Client(timeout=settings.llm_timeout_seconds)
    try:
        response = client.post(settings.llm_api_url, params={"key": settings.llm_api_key}, json=payload)
        response.raise_for_status()
        data = response.json()
    except (httpx.HTTPError, ValueError) as e:
        raise ExternalCollaboratorError("llm", str(e)) from e
    finally:
        if owns_client:
            client.close()

    try:
        return data["candidates"][0]["content"]["parts"][0]["text"]
    except (KeyError, IndexError, TypeError) as e:
        raise ExternalCollaboratorError("llm", "no candidates in response") from e


def get_ai_recommendations(db: Session, asset_id: str, client: Optional[httpx.Client] = None) -> AIRecommendation:
    asset = db.query(Asset).filter(Asset.id == asset_id).first()
    if not asset:
        raise NotFound("Asset", asset_id)

    complaints = (
        db.query(Complaint)
        .filter(Complaint.asset_id == asset_id)
        .order_by(Complaint.created_at.desc())
        .limit(10)
        .all()
    )
    history = (
        db.query(AssetHistory)
        .filter(AssetHistory.asset_id == asset_id)
        .order_by(AssetHistory.changed_at.desc())
        .limit(20)
        .all()
    )
    schedules = (
        db.query(MaintenanceSchedule)
        .filter(MaintenanceSchedule.asset_id == asset_id)
        .order_by(MaintenanceSchedule.created_at.desc())
        .limit(10)
        .all()
    )
    age_days = asset_age_days(asset)

    try:
        text = request_llm_text(build_prompt(asset, complaints, history, schedules, age_days), client=client)
        return parse_recommendation_text(text)
    except ExternalCollaboratorError as e:
        logger.warning("recommendations_fallback", asset_id=asset_id, error=e.message)
        urgent = sum(1 for c in complaints if c.status == "URGENT")
        return fallback_recommendations(asset, len(complaints), urgent, age_days)
