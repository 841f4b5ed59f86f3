from __future__ import annotations
from typing import Any, Dict
from flask import Flask, request, jsonify, Response
from loguru import logger

from raceform.aggregation.engine import build_race_view, entities_from_payload
from raceform.config.env import get_align_config, get_api_config
from raceform.exports.reports import review_report_md
from raceform.exports.writers import write_alignment, write_entities
from raceform.timeline.aligner import Alignment, align
from raceform.timeline.profile import DEFAULT_PROFILE_WINDOW, profile

import time
from collections import deque, defaultdict

app = Flask(__name__)

# Configuration helpers (overridable via app.config in tests)

def _get_api_key() -> str | None:
    if 'API_KEY' in app.config:
        return app.config.get('API_KEY')
    return get_api_config().api_key


def _get_rate_limit() -> tuple[int, float]:
    cfg = get_api_config()
    n = app.config.get('RATE_LIMIT_N')
    w = app.config.get('RATE_LIMIT_WINDOW_SEC')
    if n is None:
        n = cfg.rate_limit_n
    if w is None:
        w = cfg.rate_limit_window_sec
    return int(n), float(w)

_recent: dict[str, deque[float]] = defaultdict(lambda: deque(maxlen=100))


def _client_ip() -> str:
    xff = request.headers.get('X-Forwarded-For')
    if xff:
        return xff.split(',')[0].strip()
    return request.remote_addr or 'anon'


def _check_api_key():
    api_key = _get_api_key()
    if api_key:
        provided = request.headers.get('X-API-Key')
        if provided != api_key:
            return jsonify({'error': 'unauthorized'}), 401
    return None


def _check_rate_limit(ip: str):
    # Allow if rate limiting disabled or N <= 0
    n, window = _get_rate_limit()
    if n <= 0:
        return None
    now = time.time()
    dq = _recent[ip]
    while dq and now - dq[0] > window:
        dq.popleft()
    if len(dq) >= n:
        retry = max(0.0, window - (now - dq[0]))
        resp = jsonify({'error': 'rate_limited'})
        resp.status_code = 429
        resp.headers['Retry-After'] = f"{retry:.2f}"
        return resp
    dq.append(now)
    return None

@app.before_request
def _auth_and_rate_limit():
    if request.path.startswith('/races'):
        unauthorized = _check_api_key()
        if unauthorized is not None:
            return unauthorized
        if request.method == 'POST':
            rl = _check_rate_limit(_client_ip())
            if rl is not None:
                return rl
    return None


@app.errorhandler(ValueError)
def _bad_request(exc: ValueError):
    logger.info("rejected request to {}: {}", request.path, exc)
    return jsonify({'error': str(exc)}), 400


def _payload() -> Dict[str, Any]:
    body = request.get_json(force=True, silent=True)
    return body if isinstance(body, dict) else {}


def _align(payload: Dict[str, Any]) -> Alignment:
    cfg = get_align_config()
    selected = payload.get('selected')
    if selected is not None and not isinstance(selected, (list, dict)):
        raise ValueError("selected must be a list of horse ids or a toggle map")
    return align(
        entities_from_payload(payload),
        metric=payload.get('metric', cfg.metric),
        max_entities=payload.get('max_entities', cfg.max_entities),
        history_window=payload.get('history_window', cfg.history_window),
        axis_window=payload.get('axis_window', cfg.axis_window),
        selected=selected,
    )


@app.get('/health')
def health():
    return jsonify({'status': 'ok'})


@app.post('/races/view')
def post_race_view():
    return jsonify(build_race_view(_payload()))


@app.post('/races/align')
def post_race_align():
    return jsonify(_align(_payload()).as_dict())


@app.post('/races/profile')
def post_race_profile():
    payload = _payload()
    horse_id = payload.get('horse_id')
    if horse_id is None:
        return jsonify({'error': 'horse_id is required'}), 400
    for e in entities_from_payload(payload):
        if e.entity_id == horse_id or str(e.entity_id) == str(horse_id):
            return jsonify(profile(e, payload.get('window', DEFAULT_PROFILE_WINDOW)).as_dict())
    return jsonify({'error': 'not_found'}), 404


@app.post('/races/export/review.md')
def post_race_review():
    body = review_report_md(entities_from_payload(_payload()))
    return Response(body, mimetype='text/markdown')


@app.post('/races/export/<name>.csv')
def post_race_export(name: str):
    payload = _payload()
    if name == 'entities':
        body = write_entities(entities_from_payload(payload))
    elif name == 'alignment':
        body = write_alignment(_align(payload))
    else:
        return jsonify({'error': 'export_not_found'}), 404
    return Response(body, mimetype='text/csv', headers={
        'Content-Disposition': f'attachment; filename="{name}.csv"'
    })


if __name__ == '__main__':
    app.run(host='0.0.0.0', port=8000)
