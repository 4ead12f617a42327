from __future__ import annotations

from taskmap.core.model import Task


BASE_PROMPT = """Task: {title}
Description: {description}
Priority: {priority}

Please implement this task following best practices:
- Use TypeScript with proper type definitions
- Follow modern React/Next.js patterns
- Include proper error handling
- Add appropriate comments for complex logic
- Ensure responsive design if UI-related
- Follow security best practices

Generate clean, production-ready code that accomplishes this task."""

# Checked in order; only the first matching block is appended.
EXTRA_REQUIREMENTS: list[tuple[str, str]] = [
    (
        "component",
        """Additional requirements for React component:
- Use functional components with hooks
- Include proper PropTypes or TypeScript interfaces
- Implement loading and error states
- Follow accessibility guidelines
- Use CSS modules or styled-components for styling""",
    ),
    (
        "api",
        """Additional requirements for API:
- Use Next.js API routes with proper HTTP methods
- Include request validation and sanitization
- Implement proper error responses with status codes
- Add rate limiting if needed
- Include comprehensive error logging""",
    ),
    (
        "auth",
        """Additional requirements for authentication:
- Never store passwords in plain text
- Use secure session management
- Implement proper CSRF protection
- Include email verification flow
- Add password strength requirements
- Follow OWASP security guidelines""",
    ),
]


def build_task_prompt(task: Task) -> str:
    prompt = BASE_PROMPT.format(title=task.title, description=task.description, priority=task.priority)
    lowered = task.title.lower()
    for keyword, block in EXTRA_REQUIREMENTS:
        if keyword in lowered:
            return prompt + "\n\n" + block
    return prompt
