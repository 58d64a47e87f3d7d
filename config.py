import os
from pathlib import Path
from dotenv import load_dotenv

from ml import ANOMALY_THRESHOLD_PERCENTILE, DEFAULT_K_CLUSTERS, MAX_KMEANS_ITERATIONS

load_dotenv()

BASE_DIR = Path(__file__).resolve().parent

class Config:
    """Base configuration."""
    SECRET_KEY = os.getenv('SECRET_KEY', 'change-this-to-a-secure-random-key-in-production')

    # Uploads
    MAX_CONTENT_LENGTH = 16 * 1024 * 1024  # 16MB
    MAX_RECORDS_PER_REQUEST = int(os.getenv('MAX_RECORDS_PER_REQUEST', 10000))

    # Clustering defaults, overridable per request
    KMEANS_DEFAULT_CLUSTERS = int(os.getenv('KMEANS_DEFAULT_CLUSTERS', DEFAULT_K_CLUSTERS))
    KMEANS_MAX_ITERATIONS = int(os.getenv('KMEANS_MAX_ITERATIONS', MAX_KMEANS_ITERATIONS))
    ANOMALY_THRESHOLD_PERCENTILE = float(
        os.getenv('ANOMALY_THRESHOLD_PERCENTILE', ANOMALY_THRESHOLD_PERCENTILE)
    )

    # Rate Limiting
    RATELIMIT_DEFAULT = "200 per day;50 per hour"
    RATELIMIT_STORAGE_URI = "memory://"

    LOG_LEVEL = os.getenv('LOG_LEVEL', 'INFO')
