"""Built-in content used when generation is unavailable.

Every pool entry is ``(question, options, correct_index, explanation)``.
Builders return fresh ``Question`` lists numbered from 1; callers balance them
like generated content.
"""

import random
from typing import Dict, List, Optional, Sequence, Tuple

from .models import (
    CEFRLevel,
    DifficultyLevel,
    LearnerStats,
    Question,
    ReadingComprehension,
    Recommendation,
    RecommendationPriority,
    SkillScore,
    TipCategory,
    WeaknessAnalysis,
)

PoolEntry = Tuple[str, List[str], int, str]

DEFAULT_PLACEMENT_COUNT = 18
IELTS_QUESTION_COUNT = 40

QUIZ_POOLS: Dict[DifficultyLevel, List[PoolEntry]] = {
    DifficultyLevel.BEGINNER: [
        ("I ___ a student.", ["am", "is", "are", "be"], 0, '"I" is followed by "am" in the present tense.'),
        ("She ___ to school every day.", ["go", "goes", "going", "went"], 1, 'Third person singular uses "goes" in the present simple.'),
        ("I like ___ coffee in the morning.", ["drink", "drinks", "drinking", "drank"], 2, 'After "like" we often use the -ing form.'),
        ("This is ___ umbrella.", ["a", "the", "some", "an"], 3, 'We use "an" before vowel sounds.'),
        ("How ___ you today?", ["is", "are", "am", "be"], 1, '"You" is followed by "are".'),
        ("There ___ two cats in the garden.", ["is", "be", "are", "am"], 2, 'Plural nouns take "are".'),
    ],
    DifficultyLevel.INTERMEDIATE: [
        ("If it ___ tomorrow, we will cancel the picnic.", ["rains", "rained", "will rain", "raining"], 0, "First conditional: if + present simple, will + base form."),
        ("She has lived here ___ 2015.", ["for", "since", "from", "during"], 1, '"Since" is used with a point in time.'),
        ("I'm looking forward to ___ you.", ["see", "saw", "seeing", "be seen"], 2, '"Look forward to" is followed by the -ing form.'),
        ("The letter ___ yesterday.", ["sent", "was sending", "has sent", "was sent"], 3, "Past simple passive: was/were + past participle."),
        ("He asked me where I ___.", ["live", "lived", "living", "lives"], 1, "Reported speech shifts the present to the past."),
        ("You ___ wear a seatbelt. It's the law.", ["must", "might", "could", "would"], 0, '"Must" expresses obligation.'),
    ],
    DifficultyLevel.ADVANCED: [
        ("Not until the results came in ___ the scale of the problem.", ["we realised", "did we realise", "we did realise", "had realised"], 1, 'Negative adverbials like "not until" trigger inversion.'),
        ("The findings ___ further investigation.", ["warn", "waste", "warrant", "wander"], 2, '"Warrant" means to justify or deserve.'),
        ("Had I known about the delay, I ___ earlier.", ["would have left", "will leave", "left", "had left"], 0, "Third conditional with inversion: had + subject + past participle."),
        ("Her argument was ___ by the evidence.", ["undermined", "underlined", "underwent", "understated"], 0, '"Undermine" means to weaken.'),
        ("The committee is ___ to reach a decision by Friday.", ["probable", "possible", "likely", "able"], 2, '"Be likely to" expresses probability with an infinitive.'),
        ("So ___ was the storm that the ferry was cancelled.", ["violent", "violently", "violence", "violate"], 0, '"So" + adjective + inversion for emphasis.'),
    ],
}

READING_DEFAULTS: Dict[DifficultyLevel, Tuple[str, List[PoolEntry]]] = {
    DifficultyLevel.BEGINNER: (
        "My name is Maria. I am 25 years old. I live in a small apartment in Madrid, "
        "Spain. I work in a cafe near my home. Every morning, I wake up at 7 o'clock. "
        "I eat breakfast and then go to work. I like my job because I meet many people. "
        "In the evening, I go home and cook dinner. I like to read books before I sleep.",
        [
            ("How old is Maria?", ["20 years old", "25 years old", "30 years old", "35 years old"], 1, 'The passage states "I am 25 years old."'),
            ("Where does Maria live?", ["Barcelona", "Madrid", "Valencia", "Seville"], 1, 'The passage says "I live in a small apartment in Madrid."'),
            ("What time does Maria wake up?", ["6 o'clock", "8 o'clock", "7 o'clock", "9 o'clock"], 2, 'The passage states "I wake up at 7 o\'clock."'),
            ("Why does Maria like her job?", ["It pays well", "It is easy", "It is close to home", "She meets many people"], 3, 'The passage says "I like my job because I meet many people."'),
            ("What does Maria do before she sleeps?", ["Reads books", "Watches TV", "Cooks dinner", "Goes for a walk"], 0, 'The passage states "I like to read books before I sleep."'),
        ],
    ),
    DifficultyLevel.INTERMEDIATE: (
        "Climate change is one of the most pressing issues of our time. Scientists have "
        "found clear evidence that human activities are causing global temperatures to "
        "rise. The main cause is the increase in greenhouse gases, especially carbon "
        "dioxide, which comes from burning fossil fuels like coal, oil and gas. These "
        "gases trap heat in the atmosphere. The effects are already visible: melting ice "
        "caps, rising sea levels and more extreme weather. Many countries are now working "
        "together to reduce emissions and develop renewable energy such as solar and wind power.",
        [
            ("What is the main cause of climate change according to the passage?", ["Natural weather patterns", "Increase in greenhouse gases", "Ocean currents", "Volcanic activity"], 1, 'The passage states "The main cause is the increase in greenhouse gases."'),
            ("Where do greenhouse gases mainly come from?", ["Forests", "Oceans", "Burning fossil fuels", "Agriculture"], 2, "The passage says they come from burning fossil fuels."),
            ("Which effect of climate change is mentioned?", ["Melting ice caps", "More forests", "Cooler temperatures", "Less rain"], 0, 'The passage lists "melting ice caps" among the visible effects.'),
            ("What are countries doing about climate change?", ["Building more factories", "Increasing fossil fuel use", "Ignoring the problem", "Reducing emissions"], 3, 'The passage states that countries are "working together to reduce emissions."'),
            ("Which renewable energy sources are mentioned?", ["Coal and oil", "Solar and wind power", "Nuclear power", "Natural gas"], 1, 'The passage mentions "solar and wind power."'),
        ],
    ),
    DifficultyLevel.ADVANCED: (
        "Artificial intelligence has moved from science fiction to everyday reality. "
        "Machine learning systems, capable of processing vast datasets and finding "
        "patterns imperceptible to people, are reshaping fields from medical diagnosis "
        "to financial analysis. Yet this progress raises difficult ethical questions about "
        "privacy, autonomy and the displacement of human labour. Deploying such systems "
        "responsibly requires attention to algorithmic bias, transparency and "
        "accountability, and regulators are only beginning to design frameworks that "
        "balance innovation against these risks.",
        [
            ("What has AI evolved from according to the passage?", ["Laboratory experiments", "Mathematical theory", "Science fiction", "Industrial automation"], 2, 'The passage says AI "has moved from science fiction to everyday reality."'),
            ("Which capability of machine learning is mentioned?", ["Processing vast datasets", "Creating emotions", "Replacing all workers", "Working without data"], 0, 'The passage mentions systems "capable of processing vast datasets."'),
            ("Which concern does the passage raise?", ["Slow computers", "High energy prices", "Lack of data", "Displacement of human labour"], 3, 'The passage lists "the displacement of human labour" among ethical questions.'),
            ("What does responsible deployment require?", ["Faster hardware", "Attention to bias and transparency", "Less regulation", "More datasets"], 1, "The passage names bias, transparency and accountability."),
            ("How does the passage describe regulators?", ["Only beginning to design frameworks", "Opposed to innovation", "Finished with regulation", "Uninterested in AI"], 0, 'The passage says regulators "are only beginning to design frameworks."'),
        ],
    ),
}

PLACEMENT_POOL: List[PoolEntry] = [
    ("What ___ your name?", ["is", "are", "be", "am"], 0, '"What is your name?" uses "is" with singular "name".'),
    ("I have ___ apple and ___ orange.", ["a / a", "an / an", "a / an", "an / a"], 1, '"An" goes before vowel sounds.'),
    ("They ___ watching TV when I arrived.", ["was", "were", "is", "are"], 1, 'Past continuous: "they" + "were" + -ing.'),
    ("The book is ___ the table.", ["in", "on", "at", "by"], 1, 'We use "on" for surfaces.'),
    ("She is ___ than her sister.", ["tall", "taller", "tallest", "more tall"], 1, "Short adjectives form the comparative with -er."),
    ("I ___ already finished my homework.", ["has", "have", "had", "having"], 1, '"I" takes "have" in the present perfect.'),
    ("We need to ___ the project by Friday.", ["complete", "completing", "completed", "completes"], 0, '"Need to" is followed by the base form.'),
    ("The meeting was ___ successful.", ["high", "highly", "height", "higher"], 1, '"Highly" is the adverb modifying "successful".'),
    ('What does "postpone" mean?', ["to cancel", "to delay", "to finish", "to start"], 1, '"Postpone" means to delay.'),
    ('The opposite of "expand" is ___.', ["extend", "contract", "grow", "increase"], 1, '"Contract" means to shrink.'),
    ("We should ___ off the meeting until next week.", ["put", "take", "call", "set"], 0, '"Put off" means postpone.'),
    ("He ___ his success to hard work.", ["attributes", "contributes", "distributes", "assigns"], 0, '"Attribute X to Y" means credit X to Y.'),
    ("Neither the manager nor the employees ___ present.", ["was", "were", "is", "are"], 1, 'With "nor" the verb agrees with the closer subject.'),
    ("By next year, she ___ university.", ["will finish", "finishes", "will have finished", "has finished"], 2, "Future perfect: will have + past participle."),
    ("The report ___ by the team last week.", ["written", "was written", "wrote", "is written"], 1, "Past passive: was/were + past participle."),
    ("I wish I ___ more time.", ["have", "had", "would have", "having"], 1, "A wish about the present uses the past simple."),
    ('"Comprehensive" means ___.', ["brief", "partial", "complete", "simple"], 2, '"Comprehensive" means complete.'),
    ("We must ___ to the new regulations.", ["adapt", "adopt", "adept", "affect"], 0, '"Adapt" means adjust to.'),
    ("Everyone ___ to submit the form by Friday.", ["is required", "are required", "require", "requires"], 0, '"Everyone" is singular.'),
    ("Not until yesterday ___ the news.", ["I heard", "did I hear", "I have heard", "had I heard"], 1, 'Inversion follows "not until".'),
]

_TFNG = ["True", "False", "Not given"]
_YNNG = ["Yes", "No", "Not given"]

IELTS_POOL: List[Tuple[int, PoolEntry]] = [
    (1, ("According to the passage, renewable energy has become more cost-effective in the last decade.", _TFNG, 0, "The text states that costs have fallen over the past ten years.")),
    (1, ("The writer suggests that urbanisation will slow down by 2050.", _YNNG, 1, "The writer claims urbanisation will keep accelerating.")),
    (1, ("What is the main focus of the first paragraph?", ["Historical migration patterns", "The impact of technology on cities", "Definitions of sustainable development", "Population growth in Asia"], 1, "The opening paragraph centres on how technology changed urban life.")),
    (1, ("The passage states that all participants in the experiment improved their scores.", _TFNG, 1, "Only a majority improved.")),
    (1, ("The writer argues that traditional teaching methods are obsolete.", _YNNG, 2, "The writer compares methods without calling traditional ones obsolete.")),
    (2, ("According to the text, what was the main limitation of the 2019 study?", ["Small sample size", "Short duration", "Limited geographical scope", "Lack of a control group"], 2, "Only one region was studied.")),
    (2, ("The passage states that antibiotics are effective against viral infections.", _TFNG, 1, "Antibiotics do not work against viruses.")),
    (2, ("Which of the following best describes the structure of the passage?", ["Chronological narrative", "Problem and solution", "Comparison and contrast", "Cause and effect"], 3, "Ideas are organised around causes and effects.")),
    (2, ("Does the author endorse government regulation of social media content?", _YNNG, 0, "The author argues in favour of such regulation.")),
    (2, ("Remote work has been proven to reduce carbon emissions.", _TFNG, 2, "The passage cites no such proof.")),
    (3, ("What can be inferred about the author's view of genetic modification?", ["Unconditionally supportive", "Cautiously optimistic", "Strongly opposed", "Indifferent"], 1, "The author welcomes benefits while stressing safeguards.")),
    (3, ("The researchers expected their results before the experiment began.", _TFNG, 2, "The text does not say what the researchers expected.")),
    (3, ("Does the writer believe economic growth always benefits the environment?", _YNNG, 1, "The writer argues that growth often harms the environment.")),
    (3, ("The main conclusion of the report is that:", ["Costs will continue to fall", "Demand will exceed supply", "Alternative materials are needed", "Existing policies are sufficient"], 2, "The report concludes that alternative materials are essential.")),
    (3, ("Biodiversity loss is reversible in most ecosystems, according to the text.", _TFNG, 1, "The passage says many changes are irreversible.")),
]

DEFAULT_TIPS: Dict[TipCategory, List[str]] = {
    TipCategory.QUIZ: [
        "Read questions carefully before answering",
        "Manage your time wisely during tests",
        "Review incorrect answers to learn from mistakes",
        "Practice regularly to improve your skills",
    ],
    TipCategory.WRITING: [
        "Start with an outline to organize your thoughts",
        "Use varied sentence structures for better flow",
        "Check grammar and spelling before submitting",
        "Support ideas with examples and details",
    ],
    TipCategory.SPEAKING: [
        "Speak clearly and at a moderate pace",
        "Use complete sentences when possible",
        "Practice in a quiet environment",
        "Don't worry about mistakes, focus on communication",
    ],
}

_CEFR_BANDS = {
    CEFRLevel.A1: DifficultyLevel.BEGINNER,
    CEFRLevel.A2: DifficultyLevel.BEGINNER,
    CEFRLevel.B1: DifficultyLevel.INTERMEDIATE,
    CEFRLevel.B2: DifficultyLevel.INTERMEDIATE,
    CEFRLevel.C1: DifficultyLevel.ADVANCED,
    CEFRLevel.C2: DifficultyLevel.ADVANCED,
}


def difficulty_band(
    difficulty: DifficultyLevel, cefr_level: Optional[CEFRLevel] = None
) -> DifficultyLevel:
    """CEFR level wins over difficulty when both are given."""
    return _CEFR_BANDS[cefr_level] if cefr_level else difficulty


def _build(
    entries: Sequence[PoolEntry],
    count: int,
    topic: str,
    sections: Optional[Sequence[Optional[int]]] = None,
) -> List[Question]:
    """Build ``count`` questions, cycling through the entries if needed."""
    if not entries:
        return []
    questions = []
    for position in range(1, count + 1):
        offset = (position - 1) % len(entries)
        text, options, correct_index, explanation = entries[offset]
        questions.append(
            Question(
                id=position,
                prompt_text=text,
                options=list(options),
                correct_index=correct_index,
                explanation=explanation,
                topic=topic,
                section=sections[offset] if sections else None,
            )
        )
    return questions


def default_quiz_questions(
    topic: str,
    difficulty: DifficultyLevel,
    count: int,
    cefr_level: Optional[CEFRLevel] = None,
    rng: Optional[random.Random] = None,
) -> List[Question]:
    pool = list(QUIZ_POOLS[difficulty_band(difficulty, cefr_level)])
    (rng or random).shuffle(pool)
    return _build(pool, count, topic)


def default_reading(
    difficulty: DifficultyLevel,
    question_count: int,
    cefr_level: Optional[CEFRLevel] = None,
    topic: Optional[str] = None,
) -> ReadingComprehension:
    passage, entries = READING_DEFAULTS[difficulty_band(difficulty, cefr_level)]
    return ReadingComprehension(
        passage=passage,
        questions=_build(entries, question_count, topic or "Reading Comprehension"),
    )


def default_placement_questions(
    count: int = DEFAULT_PLACEMENT_COUNT, rng: Optional[random.Random] = None
) -> List[Question]:
    pool = list(PLACEMENT_POOL)
    (rng or random).shuffle(pool)
    return _build(pool, count, "Grammar")


def default_ielts_questions(rng: Optional[random.Random] = None) -> List[Question]:
    """The built-in IELTS set, shuffled within each section."""
    by_section: Dict[int, List[PoolEntry]] = {}
    for section, entry in IELTS_POOL:
        by_section.setdefault(section, []).append(entry)

    entries: List[PoolEntry] = []
    sections: List[Optional[int]] = []
    for section in sorted(by_section):
        group = by_section[section]
        (rng or random).shuffle(group)
        entries.extend(group)
        sections.extend([section] * len(group))

    questions = _build(entries, len(entries), "IELTS Reading", sections)
    return [
        q.model_copy(update={"topic": f"IELTS Reading Section {q.section}"})
        for q in questions
    ]


def default_tips(category: TipCategory) -> List[str]:
    return list(DEFAULT_TIPS[category])


GENERIC_INSIGHT = "Great progress! Try different activity types to keep improving."
LOW_WEEKLY_ACTIVITY = 5
WEEKLY_ACTIVITY_GOAL = 50
MIN_RECOMMENDATIONS = 2
MAX_RECOMMENDATIONS = 4


def default_progress_insight(
    skills: Sequence[SkillScore], this_week: int, check_weekly_activity: bool = True
) -> str:
    """Rule-based insight: untouched skills first, then low weekly activity."""
    untouched = [s.name for s in skills if s.value == 0]
    if untouched:
        verb = "is" if len(untouched) == 1 else "are"
        return (
            f"{' and '.join(untouched)} {verb} at 0%. "
            "Complete 2 quizzes this week to start making progress."
        )
    if check_weekly_activity and this_week < LOW_WEEKLY_ACTIVITY:
        return (
            f"You completed {this_week} activities this week. Your weekly goal is "
            f"{WEEKLY_ACTIVITY_GOAL} activities. More practice will speed up your progress!"
        )
    return GENERIC_INSIGHT


_GENERAL_RECOMMENDATIONS = [
    Recommendation(
        id="advanced-topics",
        title="Challenge Yourself",
        description="Try more advanced topics to push your skills to the next level.",
        action="Take Challenge",
    ),
    Recommendation(
        id="mixed-review",
        title="Mix Up Your Practice",
        description="Alternate quizzes, reading and speaking to keep every skill active.",
        action="Practice Now",
    ),
]


def _slug(text: str) -> str:
    return "-".join(text.lower().split())


def default_recommendations(
    stats: LearnerStats, weakness: Optional[WeaknessAnalysis] = None
) -> List[Recommendation]:
    """Rule-based recommendations, weakest areas first.

    Always returns between ``MIN_RECOMMENDATIONS`` and ``MAX_RECOMMENDATIONS``
    items.
    """
    high = RecommendationPriority.HIGH
    medium = RecommendationPriority.MEDIUM
    recommendations: List[Recommendation] = []
    weak_areas = weakness.weak_areas if weakness else []
    weak_topics = weakness.weak_quiz_topics if weakness else []

    if weak_areas:
        weakest = weak_areas[0]
        recommendations.append(
            Recommendation(
                id=f"improve-{_slug(weakest.skill)}",
                title=f"Improve Your {weakest.skill}",
                description=f"{weakest.recommendation} Your current score is {weakest.score:g}%.".strip(),
                action=f"Practice {weakest.skill}",
                priority=high,
            )
        )
    if len(weak_areas) > 1:
        second = weak_areas[1]
        recommendations.append(
            Recommendation(
                id=f"improve-{_slug(second.skill)}-2",
                title=f"Focus on {second.skill}",
                description=f"{second.recommendation} Your score is {second.score:g}%.".strip(),
                action=f"Practice {second.skill}",
                priority=high,
            )
        )
    if weak_topics:
        topic = weak_topics[0]
        recommendations.append(
            Recommendation(
                id=f"practice-{_slug(topic.topic)}",
                title=f"Practice {topic.topic}",
                description=(
                    f"You scored {topic.avg_score:g}% on {topic.topic} quizzes. "
                    "Review this topic and practice more."
                ),
                action="Review Topic",
                priority=high,
            )
        )
    if stats.average_score < 70 and not weak_areas:
        recommendations.append(
            Recommendation(
                id="improve-basics",
                title="Strengthen Your Foundation",
                description="Focus on basic grammar and vocabulary to improve your average score.",
                action="Practice Basics",
                priority=high,
            )
        )
    if stats.streak < 3:
        recommendations.append(
            Recommendation(
                id="build-streak",
                title="Build Your Learning Streak",
                description="Practice daily to build a consistent learning habit.",
                action="Start Today",
                priority=medium,
            )
        )
    if stats.total_activities < 10:
        recommendations.append(
            Recommendation(
                id="more-practice",
                title="Explore More Activities",
                description="Try quizzes, writing, and speaking exercises to diversify your learning.",
                action="Explore",
                priority=medium,
            )
        )
    for extra in _GENERAL_RECOMMENDATIONS:
        if len(recommendations) >= MIN_RECOMMENDATIONS:
            break
        recommendations.append(extra.model_copy())
    return recommendations[:MAX_RECOMMENDATIONS]
