"""
Configuration management for Creative Copycat
"""

import os
from typing import Optional, List
from dotenv import load_dotenv

# Load environment variables
load_dotenv()


def _env_int(name: str, default: int) -> int:
    value = os.getenv(name)
    if value is None or value.strip() == '':
        return default
    return int(value)


def _env_float(name: str, default: Optional[float]) -> Optional[float]:
    value = os.getenv(name)
    if value is None or value.strip() == '':
        return default
    return float(value)


def _env_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None or value.strip() == '':
        return default
    return value.strip().lower() in ('1', 'true', 'yes', 'on')


def _env_list(name: str, default: List[str]) -> List[str]:
    value = os.getenv(name)
    if not value:
        return list(default)
    return [item.strip() for item in value.split(',') if item.strip()]


class Config:
    """Application configuration"""

    # Supabase
    SUPABASE_URL: str = os.getenv('SUPABASE_URL', '')
    SUPABASE_SERVICE_KEY: str = os.getenv('SUPABASE_SERVICE_KEY', '')

    # Storage buckets / tables
    SOURCE_BUCKET: str = os.getenv('SOURCE_BUCKET', 'creatives')
    RESULT_BUCKET: str = os.getenv('RESULT_BUCKET', 'generated-creatives')
    MASK_BUCKET: str = os.getenv('MASK_BUCKET', 'masks')
    RUNS_TABLE: str = os.getenv('RUNS_TABLE', 'creative_runs')

    # OpenAI (drafting, masked edit, text-to-image)
    OPENAI_API_KEY: str = os.getenv('OPENAI_API_KEY', '')
    OPENAI_VISION_MODEL: str = os.getenv('OPENAI_VISION_MODEL', 'gpt-4o')
    OPENAI_EDIT_MODEL: str = os.getenv('OPENAI_EDIT_MODEL', 'dall-e-2')  # dall-e-3 has no edit endpoint
    OPENAI_GENERATE_MODEL: str = os.getenv('OPENAI_GENERATE_MODEL', 'dall-e-3')

    # OpenRouter (Claude drafting + Nano Banana Pro rendering)
    OPENROUTER_API_KEY: str = os.getenv('OPENROUTER_API_KEY', '')
    OPENROUTER_BASE_URL: str = os.getenv('OPENROUTER_BASE_URL', 'https://openrouter.ai/api/v1/chat/completions')
    OPENROUTER_DRAFT_MODEL: str = os.getenv('OPENROUTER_DRAFT_MODEL', 'anthropic/claude-3.5-sonnet')
    NANO_BANANA_MODEL: str = os.getenv('NANO_BANANA_MODEL', 'google/gemini-3-pro-image-preview')
    OPENROUTER_REFERER: str = os.getenv('OPENROUTER_REFERER', 'https://creativecopycat.app')
    OPENROUTER_TITLE: str = os.getenv('OPENROUTER_TITLE', 'CreativeCopycat')

    # Provider selection: "openai" or "openrouter"
    DRAFT_PROVIDER: str = os.getenv('DRAFT_PROVIDER', 'openai')
    RECREATE_PROVIDER: str = os.getenv('RECREATE_PROVIDER', 'openrouter')

    # Branding
    BRAND_NAME: str = os.getenv('BRAND_NAME', 'Algonova')
    BRAND_COLOR: str = os.getenv('BRAND_COLOR', '#833AE0')
    COMPETITOR_BRANDS: List[str] = _env_list('COMPETITOR_BRANDS', [
        'kodland', 'timedoor', 'dicoding', 'ruangguru', 'zenius', 'quipper',
        'skill academy', 'skillacademy', 'cakap', 'algoritma', 'hacktiv8',
        'binar academy', 'purwadhika', 'revou', 'course-net', 'coursenet',
        'great nusa', 'greatnusa',
    ])

    # Prompt budgets (characters). Masked edit and text-to-image endpoints
    # accept different maximum prompt lengths.
    EDIT_PROMPT_BUDGET: int = _env_int('EDIT_PROMPT_BUDGET', 1000)
    GENERATE_PROMPT_BUDGET: int = _env_int('GENERATE_PROMPT_BUDGET', 4000)

    # Geometry
    MASK_PADDING: int = _env_int('MASK_PADDING', 20)
    DIMENSION_TOLERANCE: int = _env_int('DIMENSION_TOLERANCE', 10)
    # Largest side a reconciled target may grow to (sources already larger are kept)
    MAX_TARGET_SIDE: int = _env_int('MAX_TARGET_SIDE', 8192)
    LOGO_FALLBACK_REGION: bool = _env_bool('LOGO_FALLBACK_REGION', True)
    PERSIST_MASKS: bool = _env_bool('PERSIST_MASKS', True)

    # Per external call deadline in seconds (unset or 0 = no deadline)
    EXTERNAL_CALL_TIMEOUT: Optional[float] = _env_float('EXTERNAL_CALL_TIMEOUT', 120.0)

    # Drafting temperatures
    DRAFT_TEMPERATURE: float = float(os.getenv('DRAFT_TEMPERATURE', '0.3'))
    RENDER_TEMPERATURE: float = float(os.getenv('RENDER_TEMPERATURE', '0.8'))

    @classmethod
    def validate(cls) -> bool:
        """Validate required configuration"""
        required = {
            'SUPABASE_URL': cls.SUPABASE_URL,
            'SUPABASE_SERVICE_KEY': cls.SUPABASE_SERVICE_KEY,
        }

        missing = [k for k, v in required.items() if not v]

        if missing:
            raise ValueError(f"Missing required configuration: {', '.join(missing)}")

        return True

    @classmethod
    def get(cls, key: str, default: Optional[str] = None) -> Optional[str]:
        """Get configuration value"""
        return getattr(cls, key, default)

    @classmethod
    def call_timeout(cls) -> Optional[float]:
        """Per-call deadline, or None when disabled."""
        if not cls.EXTERNAL_CALL_TIMEOUT or cls.EXTERNAL_CALL_TIMEOUT <= 0:
            return None
        return cls.EXTERNAL_CALL_TIMEOUT
