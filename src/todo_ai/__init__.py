"""
Todo AI task processor (Lambda + Bedrock)

Where: AWS Lambda behind API Gateway (POST /ai/process).
What:  Turn free-text tasks into category/priority/tips or a structured task.
Why:   Always answer: Bedrock when it responds, keyword rules when it does not.
"""

__all__ = [
    "cache",
    "config",
    "engine",
    "errors",
    "fallback",
    "handler",
    "llm",
    "logs",
    "models",
    "parsing",
    "prompts",
]
