import os
from io import BytesIO

import pandas as pd

from conftest import placement_payload, student_payload


def workbook(rows):
    buffer = BytesIO()
    pd.DataFrame(rows).to_excel(buffer, index=False, engine='openpyxl')
    buffer.seek(0)
    return buffer


def upload(client, buffer, filename):
    return client.post('/api/students/import', data={'file': (buffer, filename)},
                       content_type='multipart/form-data')


def test_health(client):
    assert client.get('/health').get_json()['status'] == 'ok'


def test_records_need_a_session(client):
    assert client.get('/api/students').status_code == 401
    assert client.post('/api/placements', json=placement_payload()).status_code == 401
    assert client.get('/api/session').get_json() == {'authenticated': False}


def test_login_rejects_wrong_password_or_role(client):
    bad_password = client.post('/api/login', json={'username': 'admin', 'password': 'nope', 'role': 'admin'})
    wrong_role = client.post('/api/login', json={'username': 'admin', 'password': 'admin123', 'role': 'teacher'})

    assert bad_password.status_code == 401
    assert wrong_role.status_code == 401
    assert client.get('/api/students').status_code == 401


def test_admin_login_reports_affordances(admin_client, app):
    body = admin_client.get('/api/session').get_json()

    assert body['user']['role'] == 'admin'
    assert body['affordances'] == {'adminFeatures': True, 'teacherFeatures': True}
    store = app.extensions['entity_store']
    assert store.get_setting('currentUser') == 'admin'
    assert store.get_setting('userRole') == 'admin'


def test_staff_can_still_add_students(client):
    login = client.post('/api/login', json={'username': 'staff', 'password': 'staff123', 'role': 'staff'})
    assert login.get_json()['affordances'] == {'adminFeatures': False, 'teacherFeatures': False}

    response = client.post('/api/students', json=student_payload())
    assert response.status_code == 201


def test_logout_clears_session_slots(admin_client, app):
    assert admin_client.post('/api/logout').status_code == 200

    store = app.extensions['entity_store']
    assert store.get_setting('currentUser') is None
    assert store.get_setting('userRole') is None
    assert admin_client.get('/api/students').status_code == 401


def test_student_crud(admin_client):
    created = admin_client.post('/api/students', json=student_payload())
    assert created.status_code == 201
    student = created.get_json()['student']
    assert student['createdAt']

    fetched = admin_client.get(f"/api/students/{student['id']}")
    assert fetched.get_json()['firstName'] == 'Abena'

    updated = admin_client.put(f"/api/students/{student['id']}", json={'class': 'Form 3C'})
    assert updated.get_json()['student']['class'] == 'Form 3C'
    assert updated.get_json()['student']['lastName'] == 'Nyarko'

    assert len(admin_client.get('/api/students').get_json()) == 4
    assert admin_client.delete(f"/api/students/{student['id']}").status_code == 200
    assert admin_client.delete(f"/api/students/{student['id']}").status_code == 404
    assert admin_client.get(f"/api/students/{student['id']}").status_code == 404


def test_invalid_student_is_rejected(admin_client):
    payload = student_payload()
    del payload['parentPhone']

    response = admin_client.post('/api/students', json=payload)

    assert response.status_code == 400
    assert 'parentPhone' in response.get_json()['details']
    assert len(admin_client.get('/api/students').get_json()) == 3


def test_student_can_be_saved_back_whole(admin_client):
    student = admin_client.get('/api/students/2').get_json()
    student['class'] = 'Form 3B'

    response = admin_client.put('/api/students/2', json=student)

    assert response.status_code == 200
    assert response.get_json()['student'] == student


def test_update_missing_record_is_404(admin_client):
    assert admin_client.put('/api/placements/nope', json={'status': 'placed'}).status_code == 404


def test_search_students(admin_client):
    found = admin_client.get('/api/students/search?q=mensah').get_json()
    assert [s['studentId'] for s in found] == ['SHS002']


def test_placements_resolve_deleted_student_as_not_available(admin_client):
    admin_client.delete('/api/students/1')

    placements = admin_client.get('/api/placements').get_json()

    assert placements[0]['studentName'] == 'N/A'
    assert placements[0]['school'] == 'University of Ghana'
    assert placements[1]['studentName'] == 'Ama Mensah'


def test_placement_crud(admin_client):
    created = admin_client.post('/api/placements', json=placement_payload(studentId='3', schoolId='3', program='ICT'))
    assert created.status_code == 201
    placement_id = created.get_json()['placement']['id']

    fetched = admin_client.get(f'/api/placements/{placement_id}').get_json()
    assert fetched['resolved']['school'] == 'Takoradi Technical University'
    assert fetched['resolved']['studentName'] == 'Kofi Asare'

    updated = admin_client.put(f'/api/placements/{placement_id}', json={'status': 'rejected'})
    assert updated.get_json()['placement']['status'] == 'rejected'

    assert admin_client.delete(f'/api/placements/{placement_id}').status_code == 200
    assert admin_client.get(f'/api/placements/{placement_id}').status_code == 404


def test_lookup_states(admin_client):
    assert admin_client.get('/api/placements/lookup?q=k').get_json()['state'] == 'too_short'
    result = admin_client.get('/api/placements/lookup?q=ama').get_json()
    assert result['state'] == 'ok'
    assert result['results'][0]['school'] == 'KNUST'


def test_import_workbook(admin_client):
    buffer = workbook([
        {'Student ID': 'SHS500', 'First Name': 'Yaw', 'Last Name': 'Boateng', 'Class': 'Form 1A',
         'Gender': 'Male', 'Date of Birth': '2009-02-11', 'Parent Phone': '+233201112233'},
        {'Student ID': None, 'First Name': 'Efua', 'Last Name': 'Owusu', 'Class': 'Form 1A',
         'Gender': 'Female', 'Date of Birth': '2009-06-03', 'Parent Phone': '+233241112233'},
    ])

    response = upload(admin_client, buffer, 'new students.xlsx')

    assert response.status_code == 201
    imported = response.get_json()['students']
    assert imported[0]['studentId'] == 'SHS500'
    assert imported[1]['studentId'].startswith('SHS')
    assert len(admin_client.get('/api/students').get_json()) == 5


def test_uploaded_files_are_not_kept(admin_client, app):
    good = workbook([{'First Name': 'Yaw', 'Last Name': 'Boateng', 'Class': 'Form 1A', 'Gender': 'Male'}])

    assert upload(admin_client, good, 'students.xlsx').status_code == 201
    assert upload(admin_client, BytesIO(b'not a spreadsheet'), 'broken.xlsx').status_code == 400
    assert os.listdir(app.config['UPLOAD_FOLDER']) == []


def test_import_with_bad_row_changes_nothing(admin_client):
    buffer = workbook([
        {'First Name': 'Yaw', 'Last Name': 'Boateng', 'Class': 'Form 1A', 'Gender': 'Male'},
        {'First Name': 'Efua', 'Last Name': None, 'Class': 'Form 1A', 'Gender': 'Female'},
    ])

    response = upload(admin_client, buffer, 'students.xlsx')

    assert response.status_code == 400
    assert response.get_json()['details'][0].startswith('Row 2')
    assert len(admin_client.get('/api/students').get_json()) == 3


def test_import_rejects_unreadable_and_unsupported_files(admin_client):
    broken = upload(admin_client, BytesIO(b'not a spreadsheet'), 'students.xlsx')
    text = upload(admin_client, BytesIO(b'Kwame,Ampofo'), 'students.txt')
    missing = admin_client.post('/api/students/import', data={}, content_type='multipart/form-data')

    assert broken.status_code == 400
    assert text.status_code == 400
    assert missing.status_code == 400
    assert len(admin_client.get('/api/students').get_json()) == 3


def test_student_exports(admin_client):
    xlsx = admin_client.get('/api/students/export')
    pdf = admin_client.get('/api/students/export?format=pdf')

    assert xlsx.status_code == 200
    assert xlsx.data[:2] == b'PK'
    assert pdf.data[:4] == b'%PDF'
    assert admin_client.get('/api/students/export?format=doc').status_code == 400


def test_placement_export(admin_client):
    response = admin_client.get('/api/placements/export')
    assert response.status_code == 200
    assert 'placements_export' in response.headers['Content-Disposition']


def test_reports(admin_client):
    report = admin_client.get('/api/reports').get_json()

    assert report['byStatus'] == {'placed': 1, 'pending': 1, 'rejected': 0}
    assert report['bySchool'] == {'University of Ghana': 1, 'KNUST': 1}
    assert report['byProgram'] == {'Computer Science': 1, 'Engineering': 1}


def test_report_downloads(admin_client):
    summary = admin_client.get('/api/reports/export/Placement%20Summary')
    detailed = admin_client.get('/api/reports/detailed')

    assert summary.status_code == 200
    assert 'Placement_Summary_report' in summary.headers['Content-Disposition']
    assert detailed.status_code == 200
    assert 'detailed_placement_report' in detailed.headers['Content-Disposition']


def test_dashboard(admin_client):
    stats = admin_client.get('/api/dashboard').get_json()
    assert stats['totalStudents'] == 3
    assert stats['placedStudents'] == 1


def test_theme_preference(client):
    assert client.get('/api/preferences/theme').get_json() == {'theme': 'light'}
    assert client.put('/api/preferences/theme', json={'theme': 'dark'}).status_code == 200
    assert client.get('/api/preferences/theme').get_json() == {'theme': 'dark'}
    assert client.put('/api/preferences/theme', json={'theme': 'blue'}).status_code == 400
