"""
Default moderation settings and the category catalogue
"""

TEXT_CATEGORIES = ['toxicity', 'bias', 'misinformation']
IMAGE_CATEGORIES = ['adult', 'violence', 'medical', 'spoof']

DEFAULT_USER_SETTINGS = {
    "toxicity_threshold": 0.7,
    "bias_threshold": 0.7,
    "misinformation_threshold": 0.7,
    "adult_threshold": "POSSIBLE",
    "violence_threshold": "POSSIBLE",
    "medical_threshold": "LIKELY",
    "spoof_threshold": "LIKELY",
    "check_copyright": True,
    "enabled_categories": ["toxicity", "bias", "misinformation", "adult", "violence"],
    "theme": "light",
    "notifications_enabled": True,
}

MODERATION_CATEGORIES = {
    "text": [
        {
            "id": "toxicity",
            "name": "Toxicity",
            "description": "Detect rude, disrespectful, or unreasonable language",
        },
        {
            "id": "bias",
            "name": "Bias",
            "description": "Detect prejudiced or unfair content",
        },
        {
            "id": "misinformation",
            "name": "Misinformation",
            "description": "Detect false or misleading information",
        },
    ],
    "image": [
        {
            "id": "adult",
            "name": "Adult Content",
            "description": "Detect adult or explicit content",
        },
        {
            "id": "violence",
            "name": "Violence",
            "description": "Detect violent content or imagery",
        },
        {
            "id": "medical",
            "name": "Medical",
            "description": "Detect medical imagery or content",
        },
        {
            "id": "spoof",
            "name": "Spoof",
            "description": "Detect spoofed or altered content",
        },
    ],
}
