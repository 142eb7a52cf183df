"""
Supabase client shared by every model
"""
import logging
from supabase import create_client, Client, ClientOptions
from config import Config

logger = logging.getLogger(__name__)


class Database:
    """Supabase database client singleton"""
    _client: Client = None

    @classmethod
    def get_client(cls) -> Client:
        """
        Get or create the Supabase client
        Raises:
            RuntimeError: when SUPABASE_URL or SUPABASE_KEY is missing
        """
        if cls._client is None:
            if not Config.validate():
                raise RuntimeError('SUPABASE_URL and SUPABASE_KEY must be set')
            options = ClientOptions(
                schema=Config.SUPABASE_SCHEMA,
                postgrest_client_timeout=Config.SUPABASE_TIMEOUT,
            )
            cls._client = create_client(Config.SUPABASE_URL, Config.SUPABASE_KEY, options=options)
            logger.info(f"Connected to Supabase schema {Config.SUPABASE_SCHEMA}")
        return cls._client

    @classmethod
    def set_client(cls, client: Client):
        """Install an already configured client"""
        cls._client = client

    @classmethod
    def reset_client(cls):
        cls._client = None

    @classmethod
    def health_check(cls) -> bool:
        """True when the rooms table answers a one-row query"""
        try:
            cls.get_client().table('rooms').select('room_id').limit(1).execute()
            return True
        except Exception as e:
            logger.error(f"Database health check failed: {e}")
            return False


def get_supabase() -> Client:
    return Database.get_client()
