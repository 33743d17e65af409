import os
import logging
from flask import Blueprint, Flask, current_app, jsonify, request, send_file, session
from pydantic import ValidationError
from werkzeug.exceptions import HTTPException
from werkzeug.utils import secure_filename

import queries
from auth import DEMO_ACCOUNTS, UserDirectory, login_required, role_affordances
from config import Config
from entity_store import EntityStore, RecordNotFoundError, StudentImportError, describe_validation_error
from excel_handler import ExcelHandler
from sample_students import seed_sample_data
from storage import StoreError, open_storage

THEMES = ('light', 'dark')

api = Blueprint('api', __name__)


def create_app(overrides=None):
    app = Flask(__name__)
    app.config.from_object(Config)
    if overrides:
        app.config.update(overrides)

    logging.basicConfig(level=app.config['LOG_LEVEL'])

    # Ensure directories exist
    os.makedirs(app.config['UPLOAD_FOLDER'], exist_ok=True)
    os.makedirs(app.config['EXPORT_FOLDER'], exist_ok=True)

    store = EntityStore(open_storage(app.config['STORAGE_BACKEND'], app.config['DATA_FOLDER']))
    if app.config['SEED_SAMPLE_DATA']:
        seeded = seed_sample_data(store)
        if seeded:
            logging.info(f"Seeded sample data: {', '.join(seeded)}")

    if app.config.get('USERS_FILE'):
        users = UserDirectory.from_file(app.config['USERS_FILE'])
    else:
        users = UserDirectory.from_plaintext(DEMO_ACCOUNTS)

    app.extensions['entity_store'] = store
    app.extensions['user_directory'] = users
    app.extensions['excel_handler'] = ExcelHandler(app.config['EXPORT_FOLDER'])

    app.register_blueprint(api)
    return app


def get_store() -> EntityStore:
    return current_app.extensions['entity_store']


def get_excel_handler() -> ExcelHandler:
    return current_app.extensions['excel_handler']


def allowed_file(filename):
    return '.' in filename and filename.rsplit('.', 1)[1].lower() in current_app.config['ALLOWED_EXTENSIONS']


def download(filepath):
    return send_file(os.path.abspath(filepath), as_attachment=True,
                     download_name=os.path.basename(filepath))


def export_format():
    fmt = request.args.get('format', 'xlsx').lower()
    if fmt not in ('xlsx', 'pdf'):
        return None
    return fmt


# Error handling

@api.errorhandler(ValidationError)
def handle_validation_error(e):
    return jsonify({'error': 'Invalid record', 'details': describe_validation_error(e)}), 400


@api.errorhandler(RecordNotFoundError)
def handle_not_found(e):
    return jsonify({'error': str(e)}), 404


@api.errorhandler(StudentImportError)
def handle_import_error(e):
    return jsonify({'error': 'Error importing file', 'details': e.errors}), 400


@api.errorhandler(StoreError)
def handle_store_error(e):
    logging.error(f"Storage error: {str(e)}")
    return jsonify({'error': 'Data could not be saved'}), 500


@api.errorhandler(Exception)
def handle_unexpected_error(e):
    if isinstance(e, HTTPException):
        return e
    logging.exception(f"Unhandled error: {str(e)}")
    return jsonify({'error': 'Internal server error'}), 500


@api.route('/health')
def health_check():
    return jsonify({'status': 'ok', 'message': 'API is running'})


# Session

@api.route('/api/login', methods=['POST'])
def login():
    payload = request.get_json(silent=True) or request.form
    username = (payload.get('username') or '').strip()
    password = payload.get('password') or ''
    role = (payload.get('role') or '').strip()

    user = current_app.extensions['user_directory'].authenticate(username, password, role)
    if user is None:
        return jsonify({'error': 'Invalid login credentials'}), 401

    session['user_id'] = user.user_id
    session['role'] = user.role
    store = get_store()
    store.set_setting('currentUser', user.user_id)
    store.set_setting('userRole', user.role)

    return jsonify({
        'message': f'Welcome back, {user.name}!',
        'user': {'id': user.user_id, 'name': user.name, 'role': user.role},
        'affordances': role_affordances(user.role),
    })


@api.route('/api/logout', methods=['POST'])
def logout():
    session.clear()
    store = get_store()
    store.clear_setting('currentUser')
    store.clear_setting('userRole')
    return jsonify({'message': 'You have been logged out'})


@api.route('/api/session')
def current_session():
    user_id = session.get('user_id')
    user = current_app.extensions['user_directory'].lookup(user_id) if user_id else None
    if user is None:
        return jsonify({'authenticated': False})
    return jsonify({
        'authenticated': True,
        'user': {'id': user.user_id, 'name': user.name, 'role': user.role},
        'affordances': role_affordances(user.role),
    })


# Students

@api.route('/api/students', methods=['GET'])
@login_required
def list_students():
    return jsonify([s.to_storage() for s in get_store().students.list()])


@api.route('/api/students', methods=['POST'])
@login_required
def add_student():
    student = get_store().students.add(request.get_json(silent=True) or {})
    return jsonify({'message': 'Student added successfully', 'student': student.to_storage()}), 201


@api.route('/api/students/search')
@login_required
def search_students():
    query = request.args.get('q', '')
    return jsonify([s.to_storage() for s in queries.search_students(get_store(), query)])


@api.route('/api/students/<student_id>', methods=['GET'])
@login_required
def get_student(student_id):
    student = get_store().students.get(student_id)
    if student is None:
        return jsonify({'error': 'Student not found'}), 404
    return jsonify(student.to_storage())


@api.route('/api/students/<student_id>', methods=['PUT'])
@login_required
def update_student(student_id):
    student = get_store().students.update(student_id, request.get_json(silent=True) or {})
    return jsonify({'message': 'Student updated successfully', 'student': student.to_storage()})


@api.route('/api/students/<student_id>', methods=['DELETE'])
@login_required
def delete_student(student_id):
    if not get_store().students.delete(student_id):
        return jsonify({'error': 'Student not found'}), 404
    return jsonify({'message': 'Student deleted successfully'})


@api.route('/api/students/import', methods=['POST'])
@login_required
def import_students():
    if 'file' not in request.files:
        return jsonify({'error': 'No file selected'}), 400

    file = request.files['file']
    if not file.filename:
        return jsonify({'error': 'No file selected'}), 400

    if not allowed_file(file.filename):
        return jsonify({'error': 'Invalid file type. Please upload an Excel or CSV file (.xlsx, .xls, .csv)'}), 400

    filename = secure_filename(file.filename)
    filepath = os.path.join(current_app.config['UPLOAD_FOLDER'], filename)
    file.save(filepath)

    try:
        rows = get_excel_handler().read_student_data(filepath)
    finally:
        os.remove(filepath)

    if rows is None:
        return jsonify({'error': 'Error processing file. Please check the format.'}), 400

    imported = get_store().import_students(rows)
    return jsonify({
        'message': f'Successfully imported {len(imported)} students',
        'students': [s.to_storage() for s in imported],
    }), 201


@api.route('/api/students/export')
@login_required
def export_students():
    fmt = export_format()
    if fmt is None:
        return jsonify({'error': 'Unsupported export format'}), 400

    students = get_store().students.list()
    if not students:
        return jsonify({'error': 'No student data to export'}), 404

    filepath = get_excel_handler().export_students(students, fmt)
    if not filepath:
        return jsonify({'error': 'Error exporting data'}), 500
    return download(filepath)


# Placements

@api.route('/api/placements', methods=['GET'])
@login_required
def list_placements():
    return jsonify(queries.resolved_placements(get_store()))


@api.route('/api/placements', methods=['POST'])
@login_required
def add_placement():
    placement = get_store().placements.add(request.get_json(silent=True) or {})
    return jsonify({'message': 'Placement added successfully', 'placement': placement.to_storage()}), 201


@api.route('/api/placements/search')
@login_required
def search_placements():
    store = get_store()
    matches = queries.search_placements(store, request.args.get('q', ''))
    return jsonify([queries.resolve_placement(store, p) for p in matches])


@api.route('/api/placements/lookup')
@login_required
def lookup_placements():
    return jsonify(queries.lookup_student_placements(get_store(), request.args.get('q', '')))


@api.route('/api/placements/export')
@login_required
def export_placements():
    fmt = export_format()
    if fmt is None:
        return jsonify({'error': 'Unsupported export format'}), 400

    filepath = get_excel_handler().export_placements(queries.resolved_placements(get_store()), fmt)
    if not filepath:
        return jsonify({'error': 'Error exporting data'}), 500
    return download(filepath)


@api.route('/api/placements/<placement_id>', methods=['GET'])
@login_required
def get_placement(placement_id):
    store = get_store()
    placement = store.placements.get(placement_id)
    if placement is None:
        return jsonify({'error': 'Placement not found'}), 404
    return jsonify({**placement.to_storage(), 'resolved': queries.resolve_placement(store, placement)})


@api.route('/api/placements/<placement_id>', methods=['PUT'])
@login_required
def update_placement(placement_id):
    placement = get_store().placements.update(placement_id, request.get_json(silent=True) or {})
    return jsonify({'message': 'Placement updated successfully', 'placement': placement.to_storage()})


@api.route('/api/placements/<placement_id>', methods=['DELETE'])
@login_required
def delete_placement(placement_id):
    if not get_store().placements.delete(placement_id):
        return jsonify({'error': 'Placement not found'}), 404
    return jsonify({'message': 'Placement deleted successfully'})


@api.route('/api/schools')
@login_required
def list_schools():
    return jsonify([s.to_storage() for s in get_store().schools.list()])


# Reports and dashboard

@api.route('/api/reports')
@login_required
def placement_report():
    return jsonify(queries.build_report(get_store()))


@api.route('/api/reports/export/<report_type>')
@login_required
def export_report(report_type):
    resolved = queries.resolved_placements(get_store(), include_notes=False)
    filepath = get_excel_handler().export_placement_report(report_type, resolved)
    if not filepath:
        return jsonify({'error': 'Error exporting data'}), 500
    return download(filepath)


@api.route('/api/reports/detailed')
@login_required
def export_detailed_report():
    filepath = get_excel_handler().export_json(queries.detailed_report(get_store()),
                                               'detailed_placement_report')
    if not filepath:
        return jsonify({'error': 'Error exporting report'}), 500
    return download(filepath)


@api.route('/api/dashboard')
@login_required
def dashboard():
    return jsonify(queries.dashboard_stats(get_store()))


@api.route('/api/preferences/theme', methods=['GET'])
def get_theme():
    return jsonify({'theme': get_store().get_setting('theme', 'light')})


@api.route('/api/preferences/theme', methods=['PUT'])
def set_theme():
    payload = request.get_json(silent=True) or {}
    theme = payload.get('theme')
    if theme not in THEMES:
        return jsonify({'error': f"Theme must be one of: {', '.join(THEMES)}"}), 400
    get_store().set_setting('theme', theme)
    return jsonify({'theme': theme})


if __name__ == '__main__':
    create_app().run(host='0.0.0.0', port=5000, debug=True)
