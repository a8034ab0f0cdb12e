"""Prompt templates for caption generation.

Platform formatting rules are appended to every caption prompt so any
writer (deterministic or model-backed) receives the same instructions.
"""

TONE_OPTIONS = (
    "Professional",
    "Casual",
    "Friendly",
    "Humorous",
    "Inspirational",
    "Educational",
    "Persuasive",
)

PLATFORM_FORMATTING = {
    "twitter": {
        "max_chars": 280,
        "rules": "Keep it under 280 characters. Use 1-2 line breaks maximum. Place hashtags at the end.",
    },
    "facebook": {
        "max_chars": 2000,
        "rules": "Use short paragraphs separated by blank lines. End with a question to drive comments.",
    },
    "linkedin": {
        "max_chars": 3000,
        "rules": "Open with a one-line hook, then short professional paragraphs. Put hashtags on the last line.",
    },
    "instagram": {
        "max_chars": 2200,
        "rules": "Hook in the first line, emojis where natural, line breaks between ideas, hashtags after a blank line.",
    },
}

CAPTION_PROMPT = (
    "Generate an engaging {tone} caption for this image that will be posted on {platform}."
    "{context}{hashtags}{mentions}\n\n"
    "{formatting}\n\n"
    "Make the caption platform-appropriate, engaging, and properly formatted with natural "
    "line breaks that make it look like a real social media post."
)

HOOKS = {
    "professional": "Here's what we've been working on.",
    "casual": "Okay, had to share this one.",
    "friendly": "Hey friends, quick update!",
    "humorous": "Not gonna lie, this made our day.",
    "inspirational": "Every big step starts with a small one.",
    "educational": "Here's something worth knowing.",
    "persuasive": "You don't want to miss this.",
}

DEFAULT_HOOK = "Something new to share."
