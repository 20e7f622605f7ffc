from flask_session import Session
from dotenv import load_dotenv
import os
import redis
import requests
from requests.adapters import HTTPAdapter, Retry

load_dotenv()

# el cliente no abre conexion hasta el primer comando
redis_url = os.getenv('REDIS_URL', 'redis://localhost:6379/0')
redis_client = redis.from_url(redis_url)

session_store = Session()


def build_http_session():
    """Sesion de requests con reintentos para errores transitorios.

    Solo se reintentan los GET: un POST de pago repetido podria cobrar dos veces.
    """
    session = requests.Session()
    retries = Retry(
        total=3,
        backoff_factor=0.5,
        status_forcelist=[429, 500, 502, 503, 504],
        allowed_methods=frozenset(['GET']),
        raise_on_status=False,
    )
    adapter = HTTPAdapter(max_retries=retries)
    session.mount("https://", adapter)
    session.mount("http://", adapter)
    session.headers.update({
        "Accept": "application/json",
        "User-Agent": "BoletosIframe/1.0",
    })
    return session
