# AI module - Gemini integration
from .gemini_client import get_gemini_client, GeminiClient
from .image_parser import (
    parse_calendar_image,
    generate_ics_from_image,
    is_supported_image,
)
from .course_recommender import (
    StudentProfile,
    CourseRecommendation,
    recommend_courses,
    format_recommendations,
)
