"""campaign_studio package.

Plans marketing campaigns as storyboards of shots, renders each shot through
pluggable providers and plays the result back as a narrated animatic.
"""

from . import prompt_composer, schemas, styles

__all__ = ["schemas", "styles", "prompt_composer"]
__version__ = "0.1.0"
