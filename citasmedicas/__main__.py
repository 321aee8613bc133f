import logging

from citasmedicas import create_app
from citasmedicas.config import Config
from citasmedicas.db import STORE_EXTENSION, init_db


def main():
    logging.basicConfig(
        level=Config.LOG_LEVEL,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    app = create_app()
    store = app.extensions[STORE_EXTENSION]
    try:
        init_db(store)
        # Un hilo por petición; todas comparten el pool de conexiones
        app.run(
            host="0.0.0.0",
            port=app.config["PORT"],
            debug=app.config["DEBUG"],
            threaded=True,
            use_reloader=False,
        )
    finally:
        store.close()


if __name__ == "__main__":
    main()
