import os
from dotenv import load_dotenv
load_dotenv()
class Config:
    SECRET_KEY = os.getenv('SECRET_KEY', 'dev-secret-key-change-in-production')
    DEBUG = os.getenv('DEBUG', 'True').lower() == 'true'
    SUPABASE_URL = os.getenv('SUPABASE_URL')
    SUPABASE_KEY = os.getenv('SUPABASE_KEY')
    SUPABASE_SCHEMA = os.getenv('SUPABASE_SCHEMA', 'public')
    SUPABASE_TIMEOUT = int(os.getenv('SUPABASE_TIMEOUT', 10))
    HOST = os.getenv('HOST', '0.0.0.0')
    PORT = int(os.getenv('PORT', 5000))
    PRICING_CACHE_TTL = int(os.getenv('PRICING_CACHE_TTL', 300))
    MAX_STAY_NIGHTS = int(os.getenv('MAX_STAY_NIGHTS', 30))
    LARGE_GROUP_SIZE = int(os.getenv('LARGE_GROUP_SIZE', 100))
    FACILITY_INFO = {
        'name': os.getenv('FACILITY_NAME', 'Schoolhouse Lodge'),
        'location': os.getenv('FACILITY_LOCATION', 'Minamiboso, Chiba, Japan'),
        'room_types': ['large', 'medium_a', 'medium_b', 'small_a', 'small_b', 'small_c'],
        'facilities': [
            'Meeting room',
            'Gymnasium',
            'Shared kitchen',
            'BBQ terrace',
            'Parking'
        ],
        'currency': 'JPY',
        'tax_included': True,
        'check_in_time': '15:00',
        'check_out_time': '10:00'
    }

    @staticmethod
    def validate():
        if not Config.SUPABASE_URL or not Config.SUPABASE_KEY:
            print("⚠️  WARNING: SUPABASE_URL and SUPABASE_KEY not set!")
            print("   Database-backed endpoints will fail until they are configured.")
            print("   Run: python setup_env.py and edit .env")
            return False
        return True
