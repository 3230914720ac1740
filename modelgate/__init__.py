"""modelgate

A gateway that routes unified chat-completion requests to configured LLM
providers, rotating API keys and adapting wire formats per provider.
"""

from importlib.metadata import PackageNotFoundError, version

from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()

try:
    __version__ = version("modelgate")
except PackageNotFoundError:
    # Fallback for source checkouts
    __version__ = "0.1.0"
__author__ = "modelgate"
