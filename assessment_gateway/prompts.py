"""Prompt templates for assessment content generation.

Prompts are kept short to save tokens. Every structured prompt asks for bare
JSON so the normalizer has as little wrapping to strip as possible.
"""

import uuid
from typing import List, Optional

from .models import (
    CEFRLevel,
    DifficultyLevel,
    LearnerStats,
    RecentActivity,
    SkillScore,
    TipCategory,
    TipsContext,
    WeaknessAnalysis,
)

QUIZ_SYSTEM_PROMPT = "Expert English teacher. Return valid JSON arrays only."
READING_SYSTEM_PROMPT = "Expert English teacher. Return JSON with passage and questions only."
PLACEMENT_SYSTEM_PROMPT = "Expert English teacher. Return JSON array of placement questions only."
IELTS_SYSTEM_PROMPT = "IELTS exam writer. Return JSON array of 40 questions only."
TIPS_SYSTEM_PROMPT = "Expert English teacher. Return JSON array of 4 tips only."
INSIGHT_SYSTEM_PROMPT = "Expert English teacher. Return only the insight text."
RECOMMENDATIONS_SYSTEM_PROMPT = "Expert English learning advisor. Return JSON array only."

WRITING_ANALYSIS_PROMPT = """You are an expert English teacher.
Analyze the student's text and return ONLY a compact JSON (no extra text, no markdown) with this exact shape:
{
  "overallScore": number(0-100),
  "grammar": {
    "score": number(0-100),
    "errors": [{"type": string, "message": string, "suggestion": string}]
  },
  "vocabulary": {
    "score": number(0-100),
    "suggestions": string[],
    "levelAnalysis": string
  },
  "coherence": {
    "score": number(0-100),
    "feedback": string
  },
  "strengths": string[],
  "improvements": string[]
}."""

WRITING_CORRECTION_PROMPT = """You are an expert English teacher.
Correct the student's text and return ONLY a JSON object (no extra text, no markdown) with this exact structure:
{
  "corrected_text": string,
  "score": number(0-100),
  "errors": [
    {"original": string, "replacement": string, "explanation": string}
  ]
}
"original" is the incorrect phrase, "replacement" the corrected phrase and
"explanation" a short explanation in simple English."""

SPEAKING_ANALYSIS_PROMPT = """You are an expert pronunciation and fluency teacher.
Analyze the speaking transcript and return ONLY a JSON object (no extra text, no markdown) with this shape:
{
  "overallScore": number(0-100),
  "pronunciation": {
    "score": number(0-100),
    "errors": [{"word": string, "expected": string, "actual": string}]
  },
  "fluency": {
    "score": number(0-100),
    "wordsPerMinute": number,
    "pauseAnalysis": string
  },
  "grammar": {
    "score": number(0-100),
    "errors": [{"type": string, "message": string, "suggestion": string}]
  },
  "vocabulary": {
    "score": number(0-100),
    "suggestions": string[],
    "levelAnalysis": string
  },
  "strengths": string[],
  "improvements": string[]
}."""

IELTS_SIMULATION_PROMPT = """You are an expert IELTS Academic Reading test writer. Create a full IELTS Academic Reading simulation.

RULES:
- Exactly 40 questions total, split across 3 sections (about 13-14 each). Section 1 slightly easier, Section 3 hardest.
- Use real IELTS question types in a realistic mix:
  1. Multiple choice with 4 options (A-D).
  2. True / False / Not Given with options ["True", "False", "Not given"].
  3. Yes / No / Not Given with options ["Yes", "No", "Not given"].
- Base texts on academic topics: science, environment, history, psychology, technology, health, education.
- Each "question" must be self-contained: include the specific statement or stem.
- correctAnswer is the 0-based index of the correct option. Vary it across questions.

Return ONLY a JSON array (no markdown):
[{"question": "...", "options": ["...", "..."], "correctAnswer": 0, "explanation": "...", "topic": "...", "section": 1}]"""


def level_note(difficulty: DifficultyLevel, cefr_level: Optional[CEFRLevel]) -> str:
    """Describe the target level for a prompt."""
    if cefr_level:
        return (
            f"Questions must match {cefr_level.value} exactly: "
            f"{cefr_level.descriptor} vocabulary/grammar."
        )
    return f"{difficulty.value} level."


def build_quiz_prompt(
    topic: str,
    difficulty: DifficultyLevel,
    count: int,
    cefr_level: Optional[CEFRLevel] = None,
) -> str:
    """Build the prompt for a multiple-choice quiz.

    Args:
        topic: Quiz topic
        difficulty: Learner difficulty
        count: Number of questions to generate
        cefr_level: Optional CEFR level, which takes precedence over difficulty

    Returns:
        Prompt string
    """
    cefr_info = f"CEFR {cefr_level.value} level. " if cefr_level else ""
    match_line = (
        f"Match {cefr_level.value} level exactly" if cefr_level else "Match difficulty level"
    )
    return f"""Generate {count} English quiz questions about "{topic}". {cefr_info}{level_note(difficulty, cefr_level)}

Requirements:
- Distribute correct answers evenly (0,1,2,3) - NOT all in option A
- {match_line}
- Different CEFR levels = different questions

Return ONLY JSON array (no markdown):
[{{"question":"...","options":["A","B","C","D"],"correctAnswer":0,"explanation":"...","topic":"{topic}"}}]

4 options per question. Vary correctAnswer (0-3) across questions."""


def build_reading_prompt(
    difficulty: DifficultyLevel,
    question_count: int,
    cefr_level: Optional[CEFRLevel] = None,
    topic: Optional[str] = None,
) -> str:
    note = level_note(difficulty, cefr_level)
    subject = topic or "general reading comprehension"
    return f"""Create a UNIQUE reading comprehension exercise with:
1. A reading passage (200-400 words). Target: {note}
2. {question_count} multiple-choice questions about the passage

The passage MUST focus on the topic: "{subject}".

Requirements:
- Passage: new and original, clearly about the topic
- Questions: based ONLY on the passage content
- Questions test main idea, details, inference and vocabulary in context
- Distribute correct answers evenly (0,1,2,3) - NOT all in option A

Return ONLY JSON (no markdown):
{{
  "passage": "Full reading text here...",
  "questions": [
    {{"question": "...", "options": ["A", "B", "C", "D"], "correctAnswer": 0, "explanation": "...", "topic": "{topic or 'Reading Comprehension'}"}}
  ]
}}"""


def build_placement_prompt(count: int, request_id: Optional[str] = None) -> str:
    """Build the placement test prompt.

    A random request id is embedded so that repeated requests are not served
    the same questions.
    """
    request_id = request_id or uuid.uuid4().hex[:12]
    return f"""You are an expert English assessor creating a CEFR placement test. Generate a completely NEW set of exactly {count} questions (request id: {request_id}).

IMPORTANT:
- Avoid the most common textbook examples.
- Vary grammar points: tenses, conditionals, modals, passives, reported speech, articles, prepositions.
- Vary vocabulary: phrasal verbs, collocations, register, idioms, word formation.
- Mix difficulty: some A1-A2, some B1-B2, some C1-C2.
- Each question must have exactly 4 options. correctAnswer is the index 0-3.
- Distribute correct answers evenly; no more than 2 consecutive questions with the same correctAnswer.

Return ONLY a valid JSON array (no markdown):
[{{"question": "...", "options": ["...", "...", "...", "..."], "correctAnswer": 0, "explanation": "...", "topic": "Grammar"}}]"""


def _context_lines(category: TipCategory, context: Optional[TipsContext]) -> List[str]:
    if context is None:
        return []

    fields = [
        ("CEFR level", context.cefr_level, ""),
        ("Overall average score", context.average_score, "%"),
        ("Total activities completed", context.total_activities, ""),
    ]
    if category is TipCategory.QUIZ:
        fields += [
            ("Quizzes taken", context.total_quizzes, ""),
            ("Quiz average", context.quiz_avg_score, "%"),
            ("Best quiz score", context.quiz_best_score, "%"),
            ("Perfect scores", context.quiz_perfect_scores, ""),
            ("By topic", context.course_summary, ""),
        ]
    elif category is TipCategory.WRITING:
        fields += [
            ("Essays written", context.total_essays, ""),
            ("Total words", context.total_words, ""),
        ]
    else:
        fields += [
            ("Recordings", context.total_recordings, ""),
            ("Avg pronunciation", context.avg_pronunciation, "%"),
        ]
    return [f"{label}: {value}{suffix}" for label, value, suffix in fields if value not in (None, "")]


def build_tips_prompt(category: TipCategory, context: Optional[TipsContext] = None) -> str:
    lines = _context_lines(category, context)
    profile = "User profile:\n" + "\n".join(lines) if lines else "No specific user data."
    return f"""Generate exactly 4 personalized, actionable tips for improving {category.value} skills in English.

{profile}

Tips must be tailored to THIS user's level and performance, not generic advice.

Return ONLY a JSON array of exactly 4 tips, no markdown:
["Tip 1", "Tip 2", "Tip 3", "Tip 4"]

Each tip must be 1-2 sentences, specific and actionable."""


def _skill_list(skills: List[SkillScore]) -> str:
    return ", ".join(f"{s.name} ({s.value:g}%)" for s in skills) or "None"


def build_progress_insight_prompt(
    stats: LearnerStats,
    skills: List[SkillScore],
    this_week: int,
    last_week: int,
    cefr_level: Optional[CEFRLevel] = None,
) -> str:
    weak = [s for s in skills if s.value < 50]
    strong = [s for s in skills if s.value >= 70]
    level = cefr_level or stats.cefr_level
    return f"""You are an expert English learning advisor. Analyze the user's progress data and write ONE personalized, actionable insight (max 200 characters).

USER DATA:
- Total activities: {stats.total_activities}
- Average score: {stats.average_score:g}%
- Current streak: {stats.streak} days
- CEFR level: {level.value if level else 'Not set'}
- This week activities: {this_week}
- Last week activities: {last_week}
- Weak skills (0-50%): {_skill_list(weak)}
- Strong skills (70%+): {_skill_list(strong)}

The insight must name specific weak areas (if any), give a concrete next step (e.g. "complete 2 quizzes") and be encouraging.

Return ONLY the insight text, no quotes, no markdown."""


def _weakness_lines(weakness: Optional[WeaknessAnalysis]) -> List[str]:
    if weakness is None:
        return []

    lines = ["WEAKNESS ANALYSIS:"]
    if weakness.weak_areas:
        areas = ", ".join(f"{w.skill} ({w.score:g}%)" for w in weakness.weak_areas)
        lines.append(f"Weak skills (need improvement): {areas}")
    else:
        lines.append("All skill areas are performing well")
    if weakness.weak_quiz_topics:
        topics = ", ".join(
            f'"{t.topic}" (avg {t.avg_score:g}%, {t.attempts} attempts)'
            for t in weakness.weak_quiz_topics
        )
        lines.append(f"Weak quiz topics: {topics}")
    else:
        lines.append("No specific weak quiz topics identified")
    if weakness.improvement_suggestions:
        lines.append("Key improvement areas:")
        lines += [f"{i}. {s}" for i, s in enumerate(weakness.improvement_suggestions, start=1)]
    return lines


def build_recommendations_prompt(
    stats: LearnerStats,
    recent_activities: Optional[List[RecentActivity]] = None,
    weakness: Optional[WeaknessAnalysis] = None,
) -> str:
    """Build the prompt for 3-4 study recommendations.

    Only the five most recent activities are included.
    """
    level = f"CEFR {stats.cefr_level.value}" if stats.cefr_level else "not yet assessed"
    recent = recent_activities or []
    if recent:
        activity_line = "Recent activities: " + ", ".join(
            f'{a.type} on "{a.course_title or "General"}" ({a.score:g}%)' for a in recent[:5]
        )
    else:
        activity_line = "No recent activities"
    context = "\n".join(
        [
            f"User level: {level}, Streak: {stats.streak} days, Total points: {stats.total_points}, "
            f"Average score: {stats.average_score:g}%, Total activities: {stats.total_activities}",
            activity_line,
            *_weakness_lines(weakness),
        ]
    )
    return f"""You are an expert English learning advisor. Generate 3-4 personalized study recommendations that target this user's weakest areas first.

USER STATISTICS:
{context}

Recommendations must be specific and actionable, ordered by severity of weakness (lowest scores = highest priority). Encourage activity types the user has not tried yet.

Return ONLY a JSON array (no markdown):
[{{"id": "rec-1", "title": "max 40 chars", "description": "max 150 chars", "action": "max 20 chars", "priority": "high|medium|low"}}]"""
