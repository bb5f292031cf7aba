"""Preset prompt templates and default prompt values.

Served to the frontend through ``GET /api/config`` so the preset dropdown,
the default negative prompt and the initial composition prompts stay in one
place.
"""

DEFAULT_NEGATIVE_PROMPT = "blurry, deformed, ugly, text, watermark, signature"

DEFAULT_TEMPLATE_PROMPT = (
    "A professional photo scene. A minimalist office desk with a laptop and a "
    "coffee cup sits by a window with soft morning light."
)
DEFAULT_SUBJECT_PROMPT = "Add a new smartphone displaying a colorful chart on the desk."
DEFAULT_COMPOSITION_ASPECT_RATIO = "16:9"

PROMPT_TEMPLATES: list[dict[str, str]] = [
    {
        "title": "Minimalist Logo",
        "prompt": (
            "A minimalist, flat vector logo of a brain made of circuits, vibrant blue and "
            "green gradient, on a clean white background."
        ),
    },
    {
        "title": "Hero Banner",
        "prompt": (
            "A cinematic, wide-angle photo of a modern kitchen with natural light streaming "
            "in, clean countertops, and a blurred background. Professional food photography, 8k."
        ),
    },
    {
        "title": "Icon Pack",
        "prompt": (
            "A set of 4 simple, flat design icons for a weather app: a sun, a cloud, a "
            "raindrop, a snowflake. Consistent line weight, on a neutral grey background."
        ),
    },
    {
        "title": "Food Photo",
        "prompt": (
            "A top-down, photorealistic shot of a rustic wooden table with an empty, "
            "handcrafted ceramic plate. Soft, natural lighting from the side."
        ),
    },
    {
        "title": "Product Shot",
        "prompt": (
            "A professional studio product shot of a single, elegant wristwatch on a grey "
            "silk cloth. Soft, diffused lighting from the side, highlighting the metallic "
            "texture. Macro lens, hyper-detailed, 8k."
        ),
    },
    {
        "title": "Team Headshot",
        "prompt": (
            "A professional, corporate headshot of a smiling person against a blurred office "
            "background. Warm, friendly lighting, sharp focus on the eyes. High-resolution."
        ),
    },
    {
        "title": "Blog Post Image",
        "prompt": (
            "An eye-catching, vibrant illustration for a blog post about digital marketing. "
            "Abstract shapes, charts, and icons in a modern flat design style. Bright and "
            "engaging color palette."
        ),
    },
    {
        "title": "Abstract Background",
        "prompt": (
            "A subtle, abstract background with soft, flowing gradients of blue and purple. "
            "Minimalist, clean, with a gentle texture. Perfect for a website hero section."
        ),
    },
    {
        "title": "Social Media Post",
        "prompt": (
            "A motivational quote in elegant, bold typography, set against a stunning "
            "photograph of a mountain sunrise. Instagram-ready, square format, high contrast."
        ),
    },
    {
        "title": "Favicon",
        "prompt": (
            "A simple, memorable, 16x16 pixel art icon of a rocket ship. Clear and "
            "recognizable at a small size. Flat design, two colors."
        ),
    },
]
