"""
Pages Blueprint - upload, study and about pages
"""
import io

from flask import Blueprint, current_app, redirect, render_template, request, send_file, url_for

from scan2study.api import LocalApi
from scan2study.storage import ReadingStore
from scan2study.study import StudyView, UploadPanel, current_view, mount_view

pages_bp = Blueprint('pages', __name__)


def _render_study(view, status=200):
    return render_template(
        "study.html",
        view=view,
        auto_summary=bool(current_app.config.get("AUTO_SUMMARY")),
    ), status


@pages_bp.route("/", methods=["GET"])
def index():
    panel = UploadPanel(LocalApi(), ReadingStore())
    return render_template("index.html", panel=panel)


@pages_bp.route("/", methods=["POST"])
def upload():
    panel = UploadPanel(LocalApi(), ReadingStore())
    target = panel.select(request.files.get("file"))
    if target:
        return redirect(url_for("pages.study"))
    return render_template("index.html", panel=panel)


@pages_bp.route("/study", methods=["GET"])
def study():
    store = ReadingStore()
    view = mount_view(store.browser_id, store.load(), LocalApi())
    if view.has_document and current_app.config.get("AUTO_SUMMARY"):
        view.ensure_summary()
    return _render_study(view)


@pages_bp.route("/study/ask", methods=["POST"])
def ask():
    store = ReadingStore()
    view = current_view(store.browser_id)
    if view is None:
        return redirect(url_for("pages.study"))
    view.ask(request.form.get("question", ""))
    return _render_study(view)


@pages_bp.route("/study/summary", methods=["POST"])
def summary():
    store = ReadingStore()
    view = current_view(store.browser_id)
    if view is None:
        return redirect(url_for("pages.study"))
    view.generate_summary()
    return _render_study(view)


@pages_bp.route("/study/download", methods=["GET"])
def download():
    store = ReadingStore()
    view = current_view(store.browser_id)
    if view is None or view.reading is None:
        view = StudyView(store.load(), LocalApi())

    exported = view.export()
    if exported is None:
        return _render_study(view, 400)

    filename, data = exported
    return send_file(io.BytesIO(data), as_attachment=True, download_name=filename, mimetype="text/plain")


@pages_bp.route("/about", methods=["GET"])
def about():
    return render_template("about.html")
