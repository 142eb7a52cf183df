#!/usr/bin/env python3
"""
Simple startup script for the lodging booking service
"""
from pathlib import Path

def main():
    """Main startup function"""
    print("🏫 Lodging Booking Service Starting...")
    print("=" * 50)

    # Check if .env exists
    env_file = Path('.env')
    if not env_file.exists():
        print("⚠️  No .env file found!")
        print("   Run: python setup_env.py")
        print("   Then edit .env with your Supabase credentials")
        print()

    # Check if requirements are installed
    try:
        import flask
        import supabase
        print("✅ Dependencies found")
    except ImportError as e:
        print(f"❌ Missing dependency: {e}")
        print("   Run: pip install -e .")
        return

    from config import Config
    from lodging_app import create_app
    app = create_app()

    print("🚀 Starting API server...")
    print(f"   API: http://localhost:{Config.PORT}/api")
    print(f"   Admin API: http://localhost:{Config.PORT}/api/admin")
    print("   Press Ctrl+C to stop")
    print("=" * 50)

    app.run(host=Config.HOST, port=Config.PORT, debug=Config.DEBUG)

if __name__ == "__main__":
    main()
