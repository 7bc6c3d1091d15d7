import os
from dotenv import load_dotenv

load_dotenv()

DB_DIR = os.getenv('DB_DIR', os.path.join(os.path.dirname(os.path.abspath(__file__)), 'databases'))


class Config:
    SECRET_KEY = os.getenv('FLASK_SECRET_KEY', 'dev-secret-key-change-in-production')

    # Database paths
    DB_DIR = DB_DIR
    BANNERS_DB = os.path.join(DB_DIR, 'banners.db')
    USER_DB = os.path.join(DB_DIR, 'users.db')
    LOG_DB = os.path.join(DB_DIR, 'app_log.db')

    # Banner engine
    BANNER_CLEANUP_INTERVAL = int(os.getenv('BANNER_CLEANUP_INTERVAL', '300'))
    BANNER_EMBED_ORIGINS = ['http://localhost:3000', 'http://localhost:5173']
    # REALTIME_WEBHOOK_URLS = ['https://your-site.example/hooks/banners']
