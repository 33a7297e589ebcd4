from flask import Flask, render_template, make_response
from datetime import datetime, timezone
import io

from analytics import aggregate
from firebase_store import get_user_bills
from logging_setup import configure_logging, get_logger
from utils import calculate_percentage, format_currency, format_date, render_safe_amount

# PDF generation - using xhtml2pdf for HTML to PDF conversion
from xhtml2pdf import pisa

configure_logging()
logger = get_logger("dashboard")

app = Flask(__name__)

app.jinja_env.filters["currency"] = format_currency
app.jinja_env.filters["amount"] = render_safe_amount
app.jinja_env.filters["display_date"] = format_date


# ------------------ HELPERS ------------------

def build_report(user_id):
    """Fetch a user's bills and aggregate them anchored at the current time."""
    now = datetime.now(timezone.utc)
    bills = get_user_bills(user_id)
    return aggregate(bills, now), now


def render_report(user_id, for_pdf=False):
    stats, now = build_report(user_id)
    return render_template(
        "statistics.html",
        user_id=user_id,
        stats=stats,
        generated_at=now,
        for_pdf=for_pdf,
        pct=calculate_percentage,
    )


# ------------------ ROUTES ------------------

@app.route("/statistics/<user_id>")
def statistics(user_id):
    try:
        return render_report(user_id)
    except ValueError as e:
        return str(e), 400
    except RuntimeError as e:
        return str(e), 503


# ------------------ PDF EXPORT ------------------
# Same report as the statistics page, without the export link

@app.route("/statistics/<user_id>/export-pdf")
def export_pdf(user_id):
    try:
        html_content = render_report(user_id, for_pdf=True)
    except ValueError as e:
        return str(e), 400
    except RuntimeError as e:
        return str(e), 503

    pdf_buffer = io.BytesIO()
    result = pisa.CreatePDF(io.StringIO(html_content), dest=pdf_buffer)
    if result.err:
        logger.error("PDF generation failed for user %s", user_id)
        return "Could not generate PDF", 500
    pdf_buffer.seek(0)

    response = make_response(pdf_buffer.read())
    response.headers['Content-Type'] = 'application/pdf'
    response.headers['Content-Disposition'] = f'attachment; filename=statistics_{user_id}.pdf'

    return response


@app.route("/health")
def health():
    return {"status": "healthy", "service": "Smart Bill Splitter dashboard"}


if __name__ == "__main__":
    app.run(host="0.0.0.0", port=5000)
