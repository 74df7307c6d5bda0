#!/usr/bin/env python3
"""
Project Estimate Questionnaire - Web Application

A visitor describes their project, we match it to service categories and
walk them through each category's questions. The final answers are what the
estimate generator receives.

Run:
    python3 app.py

Then open: http://localhost:5001
"""

import logging
import secrets
import sys
import threading
from pathlib import Path

from flask import Flask, render_template_string, request, jsonify

# Add project to path
sys.path.insert(0, str(Path(__file__).parent))

from estimate_flow.branching import QuestionFlowEngine
from estimate_flow.catalog import load_catalog
from estimate_flow.config import FlowConfig
from estimate_flow.errors import CatalogError
from estimate_flow.matcher import CategoryMatcher, keywords_by_category
from estimate_flow.schemas.questions import answers_to_dict

logger = logging.getLogger(__name__)

app = Flask(__name__)
app.secret_key = secrets.token_hex(16)

config = FlowConfig.from_env()
matcher = CategoryMatcher(config)

# Global state
sessions = {}  # Questionnaire sessions
sessions_lock = threading.Lock()
catalog = None  # Loaded on first use

HTML_TEMPLATE = """
<!DOCTYPE html>
<html lang="en">
<head>
    <meta charset="UTF-8">
    <meta name="viewport" content="width=device-width, initial-scale=1.0">
    <title>Get Your Project Estimate</title>
    <style>
        * { box-sizing: border-box; margin: 0; padding: 0; }
        body { font-family: -apple-system, BlinkMacSystemFont, sans-serif; background: #f5f5f4; color: #1c1917; }
        .card { max-width: 640px; margin: 48px auto; background: #fff; border-radius: 12px; padding: 32px; box-shadow: 0 1px 3px rgba(0,0,0,.1); }
        h1 { font-size: 22px; margin-bottom: 16px; }
        textarea { width: 100%; min-height: 120px; padding: 12px; border: 1px solid #d6d3d1; border-radius: 8px; font: inherit; }
        button { margin-top: 16px; padding: 10px 20px; border: 0; border-radius: 8px; background: #1c1917; color: #fff; cursor: pointer; }
        .option { display: block; width: 100%; text-align: left; background: #fafaf9; color: #1c1917; border: 1px solid #d6d3d1; margin-top: 8px; }
        .option.selected { border-color: #1c1917; background: #e7e5e4; }
        .bar { height: 6px; background: #e7e5e4; border-radius: 3px; margin-bottom: 24px; overflow: hidden; }
        .bar > div { height: 100%; background: #1c1917; width: 0; transition: width .4s ease; }
        .muted { color: #78716c; font-size: 13px; margin-bottom: 8px; }
        pre { white-space: pre-wrap; font-size: 12px; background: #fafaf9; padding: 12px; border-radius: 8px; }
    </style>
</head>
<body>
<div class="card">
    <div class="bar"><div id="bar"></div></div>
    <div id="content">
        <h1>Describe your project</h1>
        <textarea id="description" placeholder="e.g. I want to remodel my kitchen and fix a roof leak"></textarea>
        <button onclick="start()">Continue</button>
    </div>
</div>
<script>
    let sessionId = null;
    let selected = [];

    async function post(url, body) {
        const res = await fetch(url, { method: 'POST', headers: {'Content-Type': 'application/json'}, body: JSON.stringify(body) });
        return res.json();
    }

    async function start(category) {
        const description = document.getElementById('description')?.value || '';
        const data = await post('/api/start', { description, category });
        if (!data.session_id) {
            const hint = data.suggestion ? `<p class="muted">Did you mean ${data.suggestion.category}?</p>` : '';
            document.getElementById('content').innerHTML = `<h1>Which service do you need?</h1>${hint}` +
                data.categories.map(c => `<button class="option" onclick="start('${c}')">${c}</button>`).join('');
            return;
        }
        sessionId = data.session_id;
        loadQuestion();
    }

    async function loadQuestion() {
        const res = await fetch(`/api/question?session_id=${sessionId}`);
        const data = await res.json();
        document.getElementById('bar').style.width = `${data.progress}%`;
        if (data.complete) {
            document.getElementById('content').innerHTML = `<h1>Thanks! Preparing your estimate.</h1><pre>${JSON.stringify(data.answers, null, 2)}</pre>`;
            return;
        }
        selected = [];
        const multi = data.type === 'multiple_choice';
        document.getElementById('content').innerHTML =
            `<p class="muted">${data.category} (${data.stage}/${data.total_stages})</p><h1>${data.question}</h1>` +
            data.options.map(o => `<button class="option" data-value="${o.value}" onclick="pick(this, ${multi})">${o.label}</button>`).join('') +
            (multi ? '<button onclick="confirmChoices()">Next</button>' : '');
        window.currentQuestionId = data.id;
    }

    async function pick(el, multi) {
        const value = el.dataset.value;
        if (multi) {
            el.classList.toggle('selected');
            selected = selected.includes(value) ? selected.filter(v => v !== value) : [...selected, value];
            await post('/api/answer', { session_id: sessionId, question_id: window.currentQuestionId, values: selected });
            return;
        }
        await post('/api/answer', { session_id: sessionId, question_id: window.currentQuestionId, values: [value] });
        loadQuestion();
    }

    async function confirmChoices() {
        const data = await post('/api/confirm', { session_id: sessionId });
        if (data.accepted) loadQuestion();
    }
</script>
</body>
</html>
"""


def get_catalog():
    global catalog
    if catalog is None:
        catalog = load_catalog(config)
    return catalog


def _get_engine(session_id):
    with sessions_lock:
        return sessions.get(session_id)


def _step_payload(step, engine):
    return {
        'accepted': step.accepted,
        'state': step.state.value,
        'question_id': step.question_id,
        'transitions': [s.value for s in step.transitions],
        'reason': step.reason,
        'warnings': step.warnings,
        'complete': engine.is_complete,
        'progress': engine.recompute_progress(),
    }


# ==================== QUESTIONNAIRE API ====================

@app.route('/')
def index():
    return render_template_string(HTML_TEMPLATE)


@app.route('/api/categories', methods=['GET'])
def list_categories():
    try:
        return jsonify({'categories': keywords_by_category(get_catalog())})
    except CatalogError as e:
        logger.error("Catalog unavailable: %s", e)
        return jsonify({'error': 'Catalog unavailable'}), 503


@app.route('/api/start', methods=['POST'])
def start_flow():
    data = request.get_json(silent=True) or {}
    description = data.get('description', '')
    category = data.get('category')

    try:
        entries = get_catalog()
    except CatalogError as e:
        logger.error("Catalog unavailable: %s", e)
        return jsonify({'error': 'Catalog unavailable'}), 503

    if category:
        picked = [qs for qs in entries if qs.category == category]
        if not picked:
            return jsonify({'error': f'Unknown category: {category}'}), 400
        question_sets = [matcher.with_default_questions(picked[0])]
    else:
        question_sets = matcher.score(description, entries)

    if not question_sets:
        suggestion = matcher.suggest(description, entries)
        return jsonify({
            'session_id': None,
            'matched': [],
            'suggestion': {
                'category': suggestion.category,
                'confidence': round(suggestion.confidence, 3),
            } if suggestion else None,
            'categories': [qs.category for qs in entries],
        })

    engine = QuestionFlowEngine(question_sets, config=config)
    step = engine.start()

    session_id = secrets.token_hex(8)
    with sessions_lock:
        sessions[session_id] = engine

    return jsonify({
        'session_id': session_id,
        'matched': [qs.category for qs in question_sets],
        'warnings': step.warnings,
    })


@app.route('/api/question', methods=['GET'])
def get_question():
    session_id = request.args.get('session_id')
    engine = _get_engine(session_id)
    if engine is None:
        return jsonify({'error': 'Invalid session'}), 400

    progress = engine.recompute_progress()

    if engine.is_complete:
        # Final answers are served once, then the session is released
        with sessions_lock:
            sessions.pop(session_id, None)
        return jsonify({
            'complete': True,
            'answers': answers_to_dict(engine.answers),
            'warnings': engine.warnings,
            'progress': progress,
        })

    question = engine.current_question
    return jsonify({
        'complete': False,
        'id': question.id,
        'question': question.question,
        'type': question.type.value,
        'options': [{'label': o.label, 'value': o.value} for o in question.options],
        'category': engine.current_set.category,
        'stage': engine.current_stage,
        'total_stages': engine.total_stages,
        'has_follow_up': engine.has_follow_up_question,
        'progress': progress,
    })


@app.route('/api/answer', methods=['POST'])
def submit_answer():
    data = request.get_json(silent=True) or {}
    engine = _get_engine(data.get('session_id'))
    if engine is None:
        return jsonify({'error': 'Invalid session'}), 400

    values = data.get('values')
    if not isinstance(values, list):
        return jsonify({'error': 'values must be a list'}), 400

    step = engine.submit_answer(data.get('question_id'), values)
    return jsonify(_step_payload(step, engine))


@app.route('/api/confirm', methods=['POST'])
def confirm_choices():
    data = request.get_json(silent=True) or {}
    engine = _get_engine(data.get('session_id'))
    if engine is None:
        return jsonify({'error': 'Invalid session'}), 400

    step = engine.confirm_multiple_choice()
    return jsonify(_step_payload(step, engine))


@app.route('/api/end', methods=['POST'])
def end_flow():
    data = request.get_json(silent=True) or {}
    session_id = data.get('session_id')
    with sessions_lock:
        engine = sessions.pop(session_id, None)
    if engine is None:
        return jsonify({'error': 'Invalid session'}), 400

    return jsonify({
        'complete': engine.is_complete,
        'answers': answers_to_dict(engine.answers),
        'warnings': engine.warnings,
    })


if __name__ == '__main__':
    logging.basicConfig(level=logging.INFO)
    print("\n" + "="*50)
    print("  Project Estimate Questionnaire")
    print("  Open: http://localhost:5001")
    print("="*50 + "\n")
    app.run(host='0.0.0.0', port=5001, debug=False)
