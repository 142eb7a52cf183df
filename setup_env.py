"""
Environment setup script for the lodging booking service
Run this to create your .env file with proper configuration
"""
from pathlib import Path

ENV_TEMPLATE = """# Flask Configuration
SECRET_KEY=dev-secret-key-change-in-production
DEBUG=True
HOST=0.0.0.0
PORT=5000

# Supabase Configuration
SUPABASE_URL=your-supabase-url-here
SUPABASE_KEY=your-supabase-anon-key-here
SUPABASE_SCHEMA=public
SUPABASE_TIMEOUT=10

# Pricing and booking rules
PRICING_CACHE_TTL=300
MAX_STAY_NIGHTS=30
LARGE_GROUP_SIZE=100
"""

def create_env_file(path='.env', overwrite=False):
    env_path = Path(path)
    if env_path.exists() and not overwrite:
        print(f"⚠️  {env_path} already exists, leaving it unchanged")
        return False

    env_path.write_text(ENV_TEMPLATE)

    print(f"✅ Created {env_path}")
    print("📝 Please update SUPABASE_URL and SUPABASE_KEY with your actual Supabase credentials")
    return True

if __name__ == "__main__":
    create_env_file()
