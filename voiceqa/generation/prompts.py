"""Prompt construction for generated answers."""

from typing import Optional

from ..models.task import Language

# topic -> (standard instruction, shorter instruction used with raw audio)
CONTEXT_PROMPTS = {
    "html/css/javascript": (
        "Your answer should focus on HTML, CSS or Javascript concepts, best practices, and standards.",
        "Focus on HTML, CSS or Javascript concepts, best practices, and standards.",
    ),
    "typescript": (
        "Your answer should focus on TypeScript language concepts, features, type system, and best practices.",
        "Focus on TypeScript language concepts, features, type system, and best practices.",
    ),
    "reactjs": (
        "Your answer should focus on React.js concepts, components, hooks, and best practices.",
        "Focus on React.js concepts, components, hooks, and best practices.",
    ),
    "nextjs": (
        "Your answer should focus on Next.js framework concepts, features, and best practices.",
        "Focus on Next.js framework concepts, features, and best practices.",
    ),
    "interview": (
        "Your answer should be formatted as a concise interview response, highlighting key points clearly.",
        "Format your response as a concise interview answer, highlighting key points clearly.",
    ),
    "general": (
        "Your answer should focus on general frontend development concepts and best practices.",
        "Focus on general frontend development concepts and best practices.",
    ),
}

DEFAULT_TOPIC = "general"


def get_context_prompt(topic_context: Optional[str] = DEFAULT_TOPIC, audio_format: bool = False) -> str:
    """Instruction fragment for a topic. Unknown topics use the general one."""
    standard, audio = CONTEXT_PROMPTS.get(topic_context or DEFAULT_TOPIC, CONTEXT_PROMPTS[DEFAULT_TOPIC])
    return audio if audio_format else standard


def _custom_context_fragment(custom_context: Optional[str]) -> str:
    if custom_context and custom_context.strip():
        return f"{custom_context.strip()} "
    return ""


def build_answer_prompt(question: str,
                        language: Language,
                        topic_context: Optional[str] = DEFAULT_TOPIC,
                        previous_question: Optional[str] = None,
                        custom_context: Optional[str] = "") -> str:
    """Build the prompt asking the model to answer a transcribed question."""
    context_prompt = get_context_prompt(topic_context)

    follow_up = ""
    if previous_question:
        follow_up = f'This is a follow-up question. Previous question was: "{previous_question}". '

    completion = (f"Answer the following question concisely using Markdown formatting for better "
                  f"readability: {question}. Use headings, lists, and code blocks where appropriate.")

    prompt = f"{context_prompt} {follow_up}{_custom_context_fragment(custom_context)}{completion}"
    if Language(language) is Language.VI:
        return f"Question will be in Vietnamese and answer must be in Vietnamese. {prompt}"
    return prompt


def build_direct_audio_prompt(language: Language,
                              topic_context: Optional[str] = DEFAULT_TOPIC,
                              custom_context: Optional[str] = "") -> str:
    """Build the instruction sent alongside raw audio.

    The model is asked to restate every question it hears so the question
    text can be recovered from its answer.
    """
    context_prompt = get_context_prompt(topic_context, audio_format=True)
    custom = _custom_context_fragment(custom_context)

    if Language(language) is Language.VI:
        return (
            f"Đây là nội dung âm thanh. {context_prompt} {custom}\n"
            "QUAN TRỌNG: Nếu có nhiều câu hỏi trong đoạn âm thanh, bạn PHẢI trả lời tất cả các câu hỏi theo thứ tự. "
            "Bạn PHẢI nêu rõ từng câu hỏi bằng cách viết \"Câu hỏi 1: [nội dung câu hỏi]\" trước khi trả lời. "
            "Nếu có nhiều câu hỏi, bạn phải liệt kê chúng theo định dạng \"Câu hỏi 1: ...\", \"Câu hỏi 2: ...\", v.v.\n"
            "Sử dụng định dạng Markdown cho câu trả lời của bạn."
        )
    return (
        f"This is audio content. {context_prompt} {custom}\n"
        "IMPORTANT: If there are multiple questions in the audio, you MUST respond to ALL of them in order. "
        "You MUST clearly identify each question by writing \"Question 1: [question content]\" before answering it. "
        "If there are multiple questions, you must list them in the format \"Question 1: ...\", \"Question 2: ...\", etc.\n"
        "Use Markdown formatting for better readability in your answers."
    )
