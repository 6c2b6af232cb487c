# app.py
from dotenv import load_dotenv
load_dotenv()
import atexit
import logging

import numpy as np
from flask import Flask
from flask_compress import Compress
from flask_cors import CORS

from aerohealth.aggregator import build_source_aggregator
from aerohealth.cache import CacheSweeper, ResultCache
from aerohealth.config import Settings
from aerohealth.data_ingest import build_session
from routes import bp as main_bp
from routes_sources import sources_bp


def create_app(settings=None, cache=None, session=None, aggregator=None, rng=None, start_sweeper=True):
    settings = settings or Settings.from_env()
    logging.basicConfig(level=getattr(logging, settings.log_level, logging.INFO))

    cache = cache if cache is not None else ResultCache()
    session = session if session is not None else build_session(settings.user_agent)
    if aggregator is None:
        aggregator = build_source_aggregator(session, settings, cache=cache)

    app = Flask(__name__)
    Compress(app)
    CORS(app)
    app.extensions["aerohealth"] = {
        "settings": settings,
        "cache": cache,
        "session": session,
        "aggregator": aggregator,
        "rng": rng if rng is not None else np.random.default_rng(),
    }
    app.register_blueprint(main_bp)
    app.register_blueprint(sources_bp)

    if start_sweeper and settings.cache_sweep_interval > 0:
        sweeper = CacheSweeper(cache, settings.cache_sweep_interval)
        sweeper.start()
        atexit.register(sweeper.stop)
        app.extensions["aerohealth"]["sweeper"] = sweeper
    return app


app = create_app()

if __name__ == '__main__':
    app.run(host="0.0.0.0", port=5001, debug=False)
