#!/usr/bin/env python3
"""
Setup script for Hospital Assistant environment variables.
"""

import os
import sys
from pathlib import Path

REQUIRED_VARS = ["GEMINI_API_KEY", "PINECONE_API_KEY", "PINECONE_INDEX_NAME"]


def setup_environment():
    """Set up environment variables for the Hospital Assistant."""

    print("🏥 Hospital Assistant Environment Setup")
    print("=" * 50)

    # Check if .env file exists
    env_file = Path(".env")
    if env_file.exists():
        print("✅ Found existing .env file")
        load_env_file(env_file)
    else:
        print("📝 Creating new .env file...")
        create_env_file()
        return

    check_required_vars()

    # Test LLM initialization
    print("\n🔧 Testing LLM initialization...")
    test_llm_init()


def load_env_file(env_file: Path):
    """Load environment variables from .env file."""
    with open(env_file, 'r') as f:
        for line in f:
            line = line.strip()
            if line and not line.startswith('#') and '=' in line:
                key, value = line.split('=', 1)
                os.environ[key] = value
                print(f"   Loaded: {key}")


def create_env_file():
    """Create a new .env file with template values."""
    env_content = """# Hospital Assistant Environment Variables
# Replace these with your actual values

# Gemini API Key (default generation provider)
GEMINI_API_KEY=your-gemini-api-key

# Pinecone (knowledge base index)
PINECONE_API_KEY=your-pinecone-api-key
PINECONE_INDEX_NAME=your-index-name

# Optional providers
# OPENAI_API_KEY=your-openai-api-key
# ANTHROPIC_API_KEY=your-anthropic-api-key
"""

    with open(".env", 'w') as f:
        f.write(env_content)

    print("✅ Created .env file")
    print("⚠️  Please edit .env file with your actual API keys")


def check_required_vars():
    """Report missing required variables."""
    missing = [name for name in REQUIRED_VARS if not os.getenv(name)]
    if missing:
        print(f"⚠️  Missing variables: {', '.join(missing)}")
    else:
        print("✅ All required variables are set")


def test_llm_init():
    """Test LLM initialization."""
    try:
        from hospital_rag.models.llm_manager import LLMManager
        import yaml

        # Load config
        config_path = Path("config/config.yaml")
        if not config_path.exists():
            print("❌ Config file not found")
            return

        with open(config_path, 'r') as f:
            config = yaml.safe_load(f)

        print("✅ Config loaded successfully")

        llm_manager = LLMManager(config)
        print(f"✅ Providers available: {', '.join(llm_manager.get_available_providers())}")

    except Exception as e:
        print(f"❌ LLM initialization failed: {e}")
        sys.exit(1)


if __name__ == "__main__":
    setup_environment()
