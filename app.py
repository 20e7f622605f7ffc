from factory import createApp
import logging
import os

logging.basicConfig(level=logging.INFO, format='%(asctime)s %(levelname)s %(name)s: %(message)s')

app = createApp()

if __name__ == '__main__':

    ssl_context_env = os.environ.get("SSL_CONTEXT")

    if ssl_context_env == "adhoc":
        ssl_context = "adhoc"
    elif ssl_context_env in ("", None, "none", "None"):
        ssl_context = None
    else:
        # En caso de que quieras usar tus propios certificados
        ssl_context = tuple(ssl_context_env.split(",")) if "," in ssl_context_env else None

    app.run(host=os.environ.get('HOST'), port=os.environ.get('PORT'), debug=os.environ.get('DEBUG') == 'true', ssl_context=ssl_context)
