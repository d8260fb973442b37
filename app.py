import argparse
import logging
from datetime import datetime, timezone
from urllib.parse import urlencode

from flask import Flask, jsonify, redirect, render_template, render_template_string, request
from werkzeug.exceptions import BadRequest

from config import (
    CTR_PARAM,
    LOG_LEVEL,
    MASTER_KEY,
    SDMMAC_PARAM,
    TAG_DIRECTORY_FILE,
    UID_PARAM,
)

from libsun import DEFAULT_KEY, OutcomeStatus, SunVerifier, TagDirectory

app = Flask(__name__)
app.config['JSONIFY_PRETTYPRINT_REGULAR'] = True

logging.basicConfig(level=LOG_LEVEL)

# replay state lives for the process lifetime only
verifier = SunVerifier(MASTER_KEY)

if TAG_DIRECTORY_FILE:
    directory = TagDirectory.from_json_file(TAG_DIRECTORY_FILE)
else:
    directory = TagDirectory.demo()


@app.errorhandler(400)
def handler_bad_request(err):
    return render_template('error.html', code=400, msg=str(err)), 400


@app.errorhandler(403)
def handler_forbidden(err):
    return render_template('error.html', code=403, msg=str(err)), 403


@app.errorhandler(404)
def handler_not_found(err):
    return render_template('error.html', code=404, msg=str(err)), 404


@app.context_processor
def inject_demo_mode():
    demo_mode = MASTER_KEY == DEFAULT_KEY
    return {"demo_mode": demo_mode}


@app.route('/')
def sdm_main():
    """
    Main page with the list of endpoints.
    """
    return render_template_string("""
    <html>
    <head>
        <title>NTAG 424 DNA Verification Backend</title>
        <style>
            body { font-family: Arial, sans-serif; margin: 40px; }
            h1 { color: #2196F3; }
            .info { background: #f0f0f0; padding: 20px; border-radius: 5px; margin: 20px 0; }
        </style>
    </head>
    <body>
        <h1>NTAG 424 DNA Verification Backend</h1>
        {% if demo_mode %}
        <div class="info"><strong>Using the factory key, change it for production!</strong></div>
        {% endif %}
        <div class="info">
            <h3>Supported Endpoints:</h3>
            <ul>
                <li><strong>/verify?uid=...&amp;ctr=...&amp;cmac=...</strong> - JSON verification</li>
                <li><strong>/verify-page?uid=...&amp;ctr=...&amp;cmac=...</strong> - HTML verification</li>
                <li><strong>/tagpt</strong> - Plaintext SUN (redirects to /verify)</li>
                <li><strong>/health</strong> - Health check</li>
            </ul>
            <p>Registered tags: {{ tag_count }}</p>
        </div>
    </body>
    </html>
    """, tag_count=len(directory))


def parse_parameters():
    uid = request.args.get(UID_PARAM)
    ctr = request.args.get(CTR_PARAM)
    cmac = request.args.get(SDMMAC_PARAM)

    if not uid or not ctr or not cmac:
        raise BadRequest(f"Missing required parameters: {UID_PARAM}, {CTR_PARAM}, {SDMMAC_PARAM}")

    return uid, ctr, cmac


def _decide(uid, ctr, cmac):
    """
    Run the tap through the verifier and the tag directory.

    Returns (http status, JSON body).
    """
    outcome = verifier.verify(uid, ctr, cmac)

    if outcome.status == OutcomeStatus.MALFORMED_INPUT:
        return 400, {
            "success": False,
            "error": "Malformed parameters",
            "message": outcome.reason,
        }

    if outcome.status == OutcomeStatus.INVALID_SIGNATURE:
        return 401, {
            "success": False,
            "error": "Invalid cryptographic signature",
            "message": "This tag could not be verified. It may be counterfeit or tampered with.",
        }

    if outcome.status == OutcomeStatus.REPLAY_DETECTED:
        return 401, {
            "success": False,
            "error": "Replay attack detected",
            "message": "This tap has already been used. Please tap again.",
        }

    tag_info = directory.lookup(outcome.uid)

    if tag_info is None:
        logging.info(f"Tag {outcome.uid} is authentic but not registered")
        return 404, {
            "success": False,
            "error": "Tag not registered",
            "message": "This tag is authentic but not registered in our system.",
            "tagUid": outcome.uid,
        }

    if not tag_info.active:
        logging.info(f"Tag {outcome.uid} has status {tag_info.status}")
        return 403, {
            "success": False,
            "error": f"Tag status: {tag_info.status}",
            "message": f"This tag belongs to {tag_info.user_name} but is currently {tag_info.status}.",
            "tagUid": outcome.uid,
            "userName": tag_info.user_name,
            "status": tag_info.status,
        }

    return 200, {
        "success": True,
        "message": f"Welcome {tag_info.user_name}! Your tag has been verified.",
        "tagUid": outcome.uid,
        "userName": tag_info.user_name,
        "entitlement": tag_info.entitlement,
        "currency": tag_info.currency,
        "status": tag_info.status,
        "tapCount": outcome.read_ctr,
    }


@app.route('/verify')
def sdm_verify():
    """
    Return JSON
    """
    logging.info(f"Verification attempt from {request.remote_addr}")

    try:
        uid, ctr, cmac = parse_parameters()
    except BadRequest as err:
        return jsonify({"success": False, "error": err.description}), 400

    code, body = _decide(uid, ctr, cmac)
    return jsonify(body), code


@app.route('/verify-page')
def sdm_verify_page():
    """
    Return HTML
    """
    uid, ctr, cmac = parse_parameters()
    code, body = _decide(uid, ctr, cmac)

    return render_template('verify.html',
                           success=body["success"],
                           code=code,
                           result=body,
                           uid=uid.lower(),
                           read_ctr=body.get("tapCount")), code


@app.route('/tagpt')
def sdm_tagpt():
    args = {name: request.args.get(name, "") for name in (UID_PARAM, CTR_PARAM, SDMMAC_PARAM)}
    return redirect(f"/verify?{urlencode(args)}")


@app.route('/health')
def health():
    return jsonify({"status": "ok", "timestamp": datetime.now(timezone.utc).isoformat()})


if __name__ == '__main__':
    parser = argparse.ArgumentParser(description='NTAG 424 DNA SUN verification server')
    parser.add_argument('--host', type=str, nargs='?', default='0.0.0.0', help='address to listen on')
    parser.add_argument('--port', type=int, nargs='?', default=5000, help='port to listen on')

    args = parser.parse_args()

    if MASTER_KEY == DEFAULT_KEY:
        logging.warning("Using the factory SDMFileReadKey, change it for production!")

    app.run(debug=False, host=args.host, port=args.port)
