import os
from dotenv import load_dotenv

# Load environment variables
load_dotenv()


class Settings:
    # Flask settings
    FLASK_ENV = os.getenv('FLASK_ENV', 'development')
    DEBUG = FLASK_ENV == 'development'
    PORT = int(os.getenv('PORT', 5000))

    # Skip Firebase entirely (local UI work against a stubbed client)
    DEV_MODE = os.getenv('DEV_MODE', 'false').lower() == 'true'

    # CORS settings
    CORS_ORIGINS = os.getenv('CORS_ORIGINS', '*').split(',')

    # Firebase settings
    FIREBASE_PROJECT_ID = os.getenv('FIREBASE_PROJECT_ID')
    FIRESTORE_EMULATOR_HOST = os.getenv('FIRESTORE_EMULATOR_HOST')
    GCLOUD_PROJECT = os.getenv('GCLOUD_PROJECT', 'demo-no-project')

    @classmethod
    def use_emulator(cls) -> bool:
        return bool(cls.FIRESTORE_EMULATOR_HOST)

    @classmethod
    def validate(cls):
        """Cloud mode needs a project id; emulator and dev mode do not"""
        if cls.DEV_MODE or cls.use_emulator():
            return True

        if not cls.FIREBASE_PROJECT_ID:
            raise ValueError("Missing required environment variables: FIREBASE_PROJECT_ID")

        return True
