from flask import Flask, jsonify
import os
from datetime import timedelta
#rutas
from compra.routes import compra
from extensions import session_store, redis_client
from gateway_api.client import TicketsApiClient
from flask_cors import CORS


def createApp(overrides=None):

    app = Flask(__name__)
    app.config['SECRET_KEY'] = os.environ.get('SECRET_KEY')

    # Configura Flask-Session: el estado del wizard vive en el servidor
    app.config['SESSION_TYPE'] = os.environ.get('SESSION_TYPE', 'filesystem')
    app.config['SESSION_COOKIE_SECURE'] = True  # Hace que la cookie sea segura (solo en HTTPS)
    app.config['SESSION_COOKIE_HTTPONLY'] = True  # Hace que la cookie sea HTTP-only
    app.config['SESSION_COOKIE_SAMESITE'] = 'None'  # el iframe vive en otro dominio
    app.config['SESSION_USE_SIGNER'] = True  # Firma la cookie para mayor seguridad
    app.config['PERMANENT_SESSION_LIFETIME'] = timedelta(hours=2)

    # Backend de boletos
    app.config['TICKETS_API_URL'] = os.getenv('TICKETS_API_URL', 'http://localhost:3001')
    app.config['REQUEST_TIMEOUT'] = int(os.getenv('REQUEST_TIMEOUT', '30'))
    app.config['REQUESTS_VERIFY'] = os.getenv('REQUESTS_VERIFY', 'true').lower() == 'true'

    # precios (USD)
    app.config['GENERAL_PRICE_USD'] = os.getenv('GENERAL_PRICE_USD', '35')
    app.config['BOX_SEAT_PRICE_USD'] = os.getenv('BOX_SEAT_PRICE_USD', '75')
    app.config['BOX_FULL_PRICE_USD'] = os.getenv('BOX_FULL_PRICE_USD', '750')

    app.config['SUCCESS_RESET_SECONDS'] = float(os.getenv('SUCCESS_RESET_SECONDS', '3'))
    app.config['P2C_CANCEL_NOTIFY'] = os.getenv('P2C_CANCEL_NOTIFY', 'false').lower() == 'true'
    app.config['CAPTCHA_SCRIPT_URL'] = os.getenv('CAPTCHA_SCRIPT_URL', 'https://js.hcaptcha.com/1/api.js')
    # candado de envio por sesion en Redis; debe durar mas que una llamada al backend
    app.config['SUBMIT_LOCK_SECONDS'] = int(os.getenv('SUBMIT_LOCK_SECONDS', '60'))

    if overrides:
        app.config.update(overrides)

    session_store.init_app(app)
    app.extensions.setdefault('tickets_api', TicketsApiClient.from_config(app.config))
    app.extensions.setdefault('redis', redis_client)

    cors_origins = os.environ.get('CORS_ORIGINS', '*')
    origins_list = [origin.strip() for origin in cors_origins.split(',')]
    CORS(
        app,
        origins=origins_list,
        methods=["GET", "POST", "DELETE", "OPTIONS"],
        allowed_headers=["Content-Type", "X-Iframe-Token"],
        supports_credentials=True
    )

    @app.errorhandler(404)
    def not_found(error):
        return jsonify({'status': 'error', 'message': 'Recurso no encontrado'}), 404

    @app.errorhandler(405)
    def method_not_allowed(error):
        return jsonify({'status': 'error', 'message': 'Método no permitido'}), 405

    app.register_blueprint(compra, url_prefix='/compra')

    return app
