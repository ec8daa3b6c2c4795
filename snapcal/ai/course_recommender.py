"""Course recommendations from a free-text student profile."""

import logging
from dataclasses import dataclass, field
from typing import Optional

from .gemini_client import get_gemini_client
from .image_parser import parse_json_safely
from ..utils.error_handlers import APIError, SnapCalError

logger = logging.getLogger(__name__)

# Profile keys accepted in "key: value" lines, with their aliases
PROFILE_KEYS = {
    "major": "major", "program": "major", "programme": "major",
    "year": "year", "level": "year",
    "interests": "interests", "interest": "interests",
    "completed": "completed_courses", "completed courses": "completed_courses",
    "courses": "completed_courses",
    "goals": "goals", "goal": "goals",
}


@dataclass
class StudentProfile:
    """What the student told us about themselves."""
    major: str = ""
    year: str = ""
    interests: list[str] = field(default_factory=list)
    completed_courses: list[str] = field(default_factory=list)
    goals: str = ""

    @classmethod
    def from_text(cls, text: str) -> "StudentProfile":
        """
        Read a profile from ``key: value`` lines.

        Lists (interests, completed courses) are comma separated. Lines
        without a known key are appended to the goals.
        """
        profile = cls()
        extra = []
        for line in (text or "").splitlines():
            key, sep, value = line.partition(":")
            attr = PROFILE_KEYS.get(key.strip().lower()) if sep else None
            value = value.strip()
            if attr in ("interests", "completed_courses"):
                setattr(profile, attr, [v.strip() for v in value.split(",") if v.strip()])
            elif attr:
                setattr(profile, attr, value)
            elif line.strip():
                extra.append(line.strip())

        if extra:
            profile.goals = " ".join(filter(None, [profile.goals, *extra]))
        return profile

    def is_empty(self) -> bool:
        return not (self.major or self.year or self.interests or self.completed_courses or self.goals)

    def describe(self) -> str:
        """Profile as prompt text."""
        return "\n".join([
            f"Major: {self.major or 'Not specified'}",
            f"Year: {self.year or 'Not specified'}",
            f"Interests: {', '.join(self.interests) or 'Not specified'}",
            f"Completed courses: {', '.join(self.completed_courses) or 'None listed'}",
            f"Goals: {self.goals or 'Not specified'}",
        ])


@dataclass
class CourseRecommendation:
    """One suggested course."""
    code: str
    title: str
    reason: str
    credits: Optional[int] = None


async def recommend_courses(profile: StudentProfile, limit: int = 5) -> list[CourseRecommendation]:
    """
    Ask the model for course recommendations.

    Args:
        profile: The student's profile.
        limit: Maximum number of recommendations.

    Returns:
        Up to ``limit`` recommendations, in the model's order.

    Raises:
        SnapCalError: If the profile is empty.
        APIError: If the model gave no usable reply.
    """
    if profile.is_empty():
        raise SnapCalError("Empty profile", "Tell me a bit about yourself first (major, year, interests).")

    prompt = f"""You are an academic advisor. Recommend up to {limit} courses for this student.

STUDENT PROFILE:
{profile.describe()}

Do not recommend courses they have already completed.

Return ONLY a JSON array with no preamble or markdown formatting:
[
  {{
    "code": "CS 101",
    "title": "Course title",
    "reason": "One sentence on why it fits this student",
    "credits": 3
  }}
]"""

    client = get_gemini_client()
    response = await client.send_text(prompt)
    if not response:
        raise APIError("No response from Gemini for course recommendations")

    data = parse_json_safely(response)
    if not isinstance(data, list):
        raise APIError("Invalid course recommendation response format")

    completed = {c.replace(" ", "").lower() for c in profile.completed_courses}
    recommendations = []
    for item in data:
        if not isinstance(item, dict) or not item.get("title"):
            continue
        code = str(item.get("code") or "").strip()
        if code and code.replace(" ", "").lower() in completed:
            logger.info(f"Dropping already completed course: {code}")
            continue
        credits = item.get("credits")
        recommendations.append(CourseRecommendation(
            code=code,
            title=str(item["title"]).strip(),
            reason=str(item.get("reason") or "").strip(),
            credits=credits if isinstance(credits, int) else None,
        ))

    logger.info(f"Got {len(recommendations)} course recommendations")
    return recommendations[:limit]


def format_recommendations(recommendations: list[CourseRecommendation]) -> str:
    """Format recommendations for a chat message or terminal."""
    if not recommendations:
        return "No course recommendations found. Try adding more detail to your profile."

    lines = ["Recommended courses:", ""]
    for i, rec in enumerate(recommendations, 1):
        heading = f"{rec.code} - {rec.title}" if rec.code else rec.title
        if rec.credits:
            heading += f" ({rec.credits} credits)"
        lines.append(f"{i}. {heading}")
        if rec.reason:
            lines.append(f"   {rec.reason}")
    return "\n".join(lines)
