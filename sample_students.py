#!/usr/bin/env python3
"""
Sample records for a fresh installation, and a small import workbook for
trying out the student upload.
"""
import pandas as pd

SAMPLE_STUDENTS = [
    {
        'id': '1',
        'studentId': 'SHS001',
        'firstName': 'Kwame',
        'lastName': 'Ampofo',
        'gender': 'Male',
        'class': 'Form 1A',
        'dateOfBirth': '2008-05-15',
        'parentPhone': '+233201234567',
        'status': 'Active'
    },
    {
        'id': '2',
        'studentId': 'SHS002',
        'firstName': 'Ama',
        'lastName': 'Mensah',
        'gender': 'Female',
        'class': 'Form 2B',
        'dateOfBirth': '2007-08-22',
        'parentPhone': '+233241234567',
        'status': 'Active'
    },
    {
        'id': '3',
        'studentId': 'SHS003',
        'firstName': 'Kofi',
        'lastName': 'Asare',
        'gender': 'Male',
        'class': 'Form 3A',
        'dateOfBirth': '2006-11-30',
        'parentPhone': '+233271234567',
        'status': 'Active'
    },
]

SAMPLE_SCHOOLS = [
    {
        'id': '1',
        'name': 'University of Ghana',
        'type': 'University',
        'location': 'Accra',
        'programs': ['Computer Science', 'Business Administration', 'Medicine']
    },
    {
        'id': '2',
        'name': 'KNUST',
        'type': 'University',
        'location': 'Kumasi',
        'programs': ['Engineering', 'Agriculture', 'Pharmacy']
    },
    {
        'id': '3',
        'name': 'Takoradi Technical University',
        'type': 'Technical',
        'location': 'Takoradi',
        'programs': ['Mechanical Engineering', 'Hospitality', 'ICT']
    },
]

SAMPLE_PLACEMENTS = [
    {
        'id': '1',
        'studentId': '1',
        'schoolId': '1',
        'program': 'Computer Science',
        'placementDate': '2024-09-01',
        'status': 'placed',
        'notes': 'Excellent academic performance'
    },
    {
        'id': '2',
        'studentId': '2',
        'schoolId': '2',
        'program': 'Engineering',
        'placementDate': '2024-09-01',
        'status': 'pending',
        'notes': 'Awaiting final approval'
    },
]


def seed_sample_data(store):
    """Fill whichever of students, schools and placements are still empty."""
    seeded = []
    for collection, records in ((store.students, SAMPLE_STUDENTS),
                                (store.schools, SAMPLE_SCHOOLS),
                                (store.placements, SAMPLE_PLACEMENTS)):
        if collection.seed(records):
            seeded.append(collection.slot)
    return seeded


def create_sample_student_data(output_file='sample_students.xlsx'):
    """Create a sample import workbook; the last two rows leave Student ID blank."""
    sample_data = [
        {'Student ID': 'SHS101', 'First Name': 'Yaw', 'Last Name': 'Boateng', 'Class': 'Form 1A',
         'Gender': 'Male', 'Date of Birth': '2009-02-11', 'Parent Phone': '+233201112233'},
        {'Student ID': 'SHS102', 'First Name': 'Efua', 'Last Name': 'Owusu', 'Class': 'Form 1A',
         'Gender': 'Female', 'Date of Birth': '2009-06-03', 'Parent Phone': '+233241112233'},
        {'Student ID': 'SHS103', 'First Name': 'Kojo', 'Last Name': 'Darko', 'Class': 'Form 1B',
         'Gender': 'Male', 'Date of Birth': '2008-12-19', 'Parent Phone': '+233271112233'},
        {'Student ID': 'SHS104', 'First Name': 'Akosua', 'Last Name': 'Frimpong', 'Class': 'Form 2A',
         'Gender': 'Female', 'Date of Birth': '2008-01-27', 'Parent Phone': '+233501112233'},
        {'Student ID': None, 'First Name': 'Kwabena', 'Last Name': 'Osei', 'Class': 'Form 2B',
         'Gender': 'Male', 'Date of Birth': '2007-09-09', 'Parent Phone': '+233551112233'},
        {'Student ID': None, 'First Name': 'Adwoa', 'Last Name': 'Agyeman', 'Class': 'Form 3A',
         'Gender': 'Female', 'Date of Birth': '2006-04-14', 'Parent Phone': '+233261112233'},
    ]

    df = pd.DataFrame(sample_data)
    df.to_excel(output_file, index=False, engine='openpyxl')

    print(f"Sample student data created in '{output_file}'")
    print(f"Total students: {len(df)}")
    print(f"Classes: {sorted(df['Class'].unique())}")
    print(f"Gender distribution: {df['Gender'].value_counts().to_dict()}")

    return output_file


if __name__ == "__main__":
    create_sample_student_data()
