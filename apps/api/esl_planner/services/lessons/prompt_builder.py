import json

from esl_planner.schemas.lesson import LessonParameters


LEVEL_DESCRIPTIONS = {
    "A1": "Beginner",
    "A2": "Elementary",
    "B1": "Intermediate",
    "B2": "Upper Intermediate",
    "C1": "Advanced",
    "C2": "Proficient",
}

SYSTEM_PROMPT = (
    "You are an expert ESL teacher with years of experience creating engaging and effective lesson materials. "
    "Your task is to create well-structured, error-free JSON content that strictly follows the structure "
    "defined in the user prompt. Ensure all arrays are proper JSON arrays with square brackets, all objects "
    "have proper key-value pairs, and there are no formatting errors. Return exactly one JSON object."
)


def level_description(level: str) -> str:
    return LEVEL_DESCRIPTIONS.get(level, f"{level} level")


def question_count_for_level(level: str) -> int:
    if level in {"A1", "A2"}:
        return 3
    if level in {"B1", "B2"}:
        return 4
    return 5


def _lesson_shape(params: LessonParameters, question_count: int) -> str:
    question = {
        "question": "Question about the reading",
        "options": ["Option A", "Option B", "Option C", "Option D"],
        "correctAnswer": "Option A",
    }
    shape = {
        "title": "Engaging and descriptive lesson title",
        "level": params.cefrLevel,
        "focus": params.focus,
        "estimatedTime": params.lessonLength,
        "sections": [
            {
                "type": "warmup",
                "title": "Warm-up Activity",
                "content": "Brief activity introducing the topic and the 5 key vocabulary items.",
                "questions": ["Warm-up question 1", "Warm-up question 2", "Warm-up question 3"],
                "targetVocabulary": ["word1", "word2", "word3", "word4", "word5"],
                "timeAllocation": "5 minutes",
                "teacherNotes": "How to run the warm-up.",
            },
            {
                "type": "reading",
                "title": "Reading Text",
                "introduction": "One sentence introducing the passage.",
                "text": "One continuous passage of at least 15 sentences that uses all 5 vocabulary words.",
                "imageDescription": "An image illustrating a key idea of the passage",
                "timeAllocation": "15 minutes",
            },
            {
                "type": "vocabulary",
                "title": "Key Vocabulary",
                "words": [
                    {
                        "term": "word1",
                        "partOfSpeech": "noun",
                        "definition": "Definition appropriate for the level",
                        "example": "Example sentence using the word naturally",
                        "pronunciation": "syllable breakdown with stress",
                        "collocations": ["common phrase 1", "common phrase 2"],
                        "usageNotes": "When and how to use the word",
                    }
                ],
                "timeAllocation": "10 minutes",
            },
            {
                "type": "comprehension",
                "title": "Reading Comprehension",
                "questions": [question] * question_count,
                "timeAllocation": "10 minutes",
            },
            {
                "type": "sentenceFrames",
                "title": "Sentence Frames",
                "frames": [
                    {
                        "pattern": "I think _____ is important because _____.",
                        "examples": ["Example sentence 1", "Example sentence 2"],
                    }
                ],
                "timeAllocation": "10 minutes",
            },
            {
                "type": "discussion",
                "title": "Post-reading Discussion",
                "questions": ["Discussion question 1", "Discussion question 2"],
                "timeAllocation": "10 minutes",
            },
            {
                "type": "quiz",
                "title": "Knowledge Check Quiz",
                "questions": [question] * 5,
                "timeAllocation": "10 minutes",
            },
        ],
    }
    return json.dumps(shape, indent=2, ensure_ascii=False)


def build_lesson_prompts(params: LessonParameters) -> tuple[str, str]:
    level = params.cefrLevel
    description = level_description(level)
    question_count = question_count_for_level(level)

    user_prompt = f"""You are creating an interactive ESL lesson for {description} ({level}) level students.

LESSON SPECIFICATIONS:
- Topic: "{params.topic}"
- Focus: "{params.focus}"
- CEFR Level: {level} ({description})
- Lesson Length: {params.lessonLength} minutes
- Additional notes: {params.additionalNotes or 'None'}

This lesson is used by a teacher running a 1-on-1 online class via screen sharing.

LESSON DEVELOPMENT PROCESS (follow in order):
1. FIRST, select EXACTLY 5 vocabulary words appropriate for {level} and highly relevant to "{params.topic}".
2. SECOND, write ONE continuous reading passage in the "text" field that uses ALL 5 vocabulary words naturally. It must have at least 15 complete sentences so it can be shown as 5 paragraphs of at least 3 sentences each.
3. THIRD, build every other section on that vocabulary and passage:
   - the warm-up introduces the same 5 words in "targetVocabulary"
   - the vocabulary section defines the same 5 words
   - write exactly {question_count} comprehension questions about the passage; every "correctAnswer" must be copied exactly from its "options"
   - write exactly 5 discussion questions as plain strings
   - sentence frames give scaffolded practice with topic-related structures

REQUIRED JSON STRUCTURE:
{_lesson_shape(params, question_count)}

Replace every placeholder with real content about "{params.topic}". Do not return counts in place of lists."""
    return SYSTEM_PROMPT, user_prompt
