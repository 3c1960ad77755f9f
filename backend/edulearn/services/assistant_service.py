"""
Chat-completion backed assistants: upload optimization, tutor chat, study aids
"""

import re
from dataclasses import dataclass
from typing import Dict, List, Optional

from openai import AsyncOpenAI, OpenAIError

from edulearn.services.errors import OptimizationUnavailable
from edulearn.utils.logger import get_logger

logger = get_logger(__name__)

ChatMessage = Dict[str, str]

TITLE_PATTERN = re.compile(r"TITLE:[ \t]*(.+?)(?=\n|DESCRIPTION:|$)", re.IGNORECASE)
DESCRIPTION_PATTERN = re.compile(r"DESCRIPTION:[ \t]*(.+?)(?=\n|TAGS:|$)", re.IGNORECASE)
TAGS_PATTERN = re.compile(r"TAGS:[ \t]*(.+?)(?=\n|$)", re.IGNORECASE)


class ChatCompletionClient:
    """OpenAI-compatible chat endpoint. complete() returns None instead of raising."""

    def __init__(self, api_key: str, base_url: str, model: str, max_tokens: int = 1000):
        self.model = model
        self.max_tokens = max_tokens
        if not api_key:
            logger.warning("Chat API key not configured - AI assist disabled")
            self.client = None
            return
        self.client = AsyncOpenAI(
            api_key=api_key,
            base_url=base_url,
            default_headers={"X-Title": "EduLearn Platform"},
        )

    @property
    def available(self) -> bool:
        return self.client is not None

    async def complete(self, messages: List[ChatMessage], model: Optional[str] = None) -> Optional[str]:
        if not self.client:
            return None

        try:
            response = await self.client.chat.completions.create(
                model=model or self.model,
                messages=messages,
                max_tokens=self.max_tokens,
                temperature=0.7,
                top_p=0.9,
                frequency_penalty=0.1,
                presence_penalty=0.1,
            )
        except OpenAIError as e:
            logger.error(f"Chat completion failed: {str(e)}")
            return None

        if not response.choices:
            logger.warning("Chat completion returned no choices")
            return None
        return response.choices[0].message.content


@dataclass
class OptimizationResult:
    success: bool
    title: str
    description: str
    tags: str
    error: Optional[OptimizationUnavailable] = None


def _match(pattern: re.Pattern, text: str) -> Optional[str]:
    match = pattern.search(text)
    if not match:
        return None
    value = match.group(1).strip().strip("*").strip()
    return value or None


def parse_optimization(response: str, title: str, description: str, tags: str) -> OptimizationResult:
    """Pull TITLE / DESCRIPTION / TAGS out of a completion; absent fields keep the current value"""
    new_title = _match(TITLE_PATTERN, response)
    new_description = _match(DESCRIPTION_PATTERN, response)
    new_tags = _match(TAGS_PATTERN, response)

    if new_title is None and new_description is None and new_tags is None:
        return OptimizationResult(
            success=False,
            title=title,
            description=description,
            tags=tags,
            error=OptimizationUnavailable("AI response did not contain any suggestions"),
        )

    return OptimizationResult(
        success=True,
        title=new_title if new_title is not None else title,
        description=new_description if new_description is not None else description,
        tags=new_tags if new_tags is not None else tags,
    )


class ContentAssistant:

    def __init__(self, chat: ChatCompletionClient):
        self.chat = chat

    async def generate_educational_response(
        self, user_message: str, subject: str, context: Optional[str] = None
    ) -> Optional[str]:
        system_prompt = f"""You are an expert AI tutor specializing in {subject}. Your role is to:

1. Provide clear, accurate, and educational explanations
2. Break down complex concepts into understandable parts
3. Use examples and analogies when helpful
4. Encourage critical thinking and learning
5. Be patient and supportive
6. Adapt your language to the student's level

{f'Context: {context}' if context else ''}

Always maintain a friendly, encouraging tone and focus on helping the student understand the material deeply."""

        return await self.chat.complete([
            {"role": "system", "content": system_prompt},
            {"role": "user", "content": user_message},
        ])

    async def optimize(
        self,
        context: Optional[str],
        subject: str,
        grade_level: str,
        current_title: str,
        current_description: str,
        current_tags: str = "",
    ) -> OptimizationResult:
        """Ask for a better title / description / tags. Never raises."""
        unchanged = OptimizationResult(
            success=False,
            title=current_title,
            description=current_description,
            tags=current_tags,
        )

        if not self.chat.available:
            unchanged.error = OptimizationUnavailable("AI optimization is not configured")
            return unchanged

        prompt = f"""Create optimized content for an educational video upload:

Video context: {context or current_title}
Subject: {subject}
Grade level: {grade_level}
Current title: {current_title or 'Not set'}
Current description: {current_description or 'Not set'}

Please provide:
1. An engaging, SEO-friendly title (30-60 characters)
2. A comprehensive description (300-500 characters) that explains what students will learn
3. Relevant tags (comma-separated, 5-8 tags)

Format your response as:
TITLE: [optimized title]
DESCRIPTION: [optimized description]
TAGS: [tag1, tag2, tag3, etc.]"""

        response = await self.generate_educational_response(
            prompt,
            subject,
            f"Educational video upload optimization for {grade_level} level",
        )
        if not response:
            unchanged.error = OptimizationUnavailable("AI optimization failed. Please try again.")
            return unchanged

        result = parse_optimization(response, current_title, current_description, current_tags)
        if result.success:
            logger.info(f"AI optimization produced suggestions for '{current_title}'")
        else:
            logger.warning("AI optimization response could not be parsed")
        return result

    async def generate_video_analysis(self, title: str, description: str, subject: str) -> Optional[str]:
        system_prompt = """You are an AI educational assistant. Analyze the given video content and provide:

1. Key learning objectives
2. Main concepts covered
3. Suggested follow-up questions for students
4. Related topics to explore
5. Difficulty level assessment

Be concise but comprehensive in your analysis."""

        user_message = f"""Please analyze this educational video:

Title: {title}
Subject: {subject}
Description: {description}

Provide a helpful analysis for students who are about to watch or have just watched this video."""

        return await self.chat.complete([
            {"role": "system", "content": system_prompt},
            {"role": "user", "content": user_message},
        ])

    async def generate_study_plan(self, subject: str, current_level: str, goals: str) -> Optional[str]:
        system_prompt = """You are an AI educational planner. Create personalized study plans that are:

1. Realistic and achievable
2. Progressive in difficulty
3. Include diverse learning methods
4. Have clear milestones
5. Adaptable to different learning styles

Format your response with clear sections and actionable steps."""

        user_message = f"""Create a study plan for:

Subject: {subject}
Current Level: {current_level}
Goals: {goals}

Please provide a structured plan with timeline, key topics, and learning strategies."""

        return await self.chat.complete([
            {"role": "system", "content": system_prompt},
            {"role": "user", "content": user_message},
        ])
