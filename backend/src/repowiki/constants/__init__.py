"""Configuration constants.

Re-exports all config for convenient importing:
    from repowiki.constants import MAX_OUTLINE_FILES, EXCERPT_CHARS
"""

from repowiki.constants.analysis import *  # noqa: F403
from repowiki.constants.files import *  # noqa: F403
from repowiki.constants.github import *  # noqa: F403
from repowiki.constants.llm import *  # noqa: F403
from repowiki.constants.wiki import *  # noqa: F403
