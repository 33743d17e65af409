#!/usr/bin/env python3
"""
Create a bulk student import workbook for exercising the upload and export paths.
"""
import random
from datetime import date

import pandas as pd
from faker import Faker

CLASSES = ['Form 1A', 'Form 1B', 'Form 2A', 'Form 2B', 'Form 3A', 'Form 3B']
BIRTH_YEARS = {'Form 1': 2009, 'Form 2': 2008, 'Form 3': 2007}


def create_bulk_test_data(output_file='bulk_students_test_data.xlsx', students_per_class=30,
                          blank_id_ratio=0.1, seed=None):
    """
    Write a workbook in the import layout.

    About blank_id_ratio of the rows leave Student ID empty so the
    generated-id path gets exercised as well.
    """
    fake = Faker('en_GB')
    rng = random.Random(seed)
    if seed is not None:
        Faker.seed(seed)

    students_data = []
    counter = 1
    for class_name in CLASSES:
        birth_year = BIRTH_YEARS[class_name[:6]]
        for _ in range(students_per_class):
            gender = rng.choice(['Male', 'Female'])
            first_name = fake.first_name_male() if gender == 'Male' else fake.first_name_female()

            student_id = f"SHS{str(counter).zfill(4)}"
            if rng.random() < blank_id_ratio:
                student_id = None

            students_data.append({
                'Student ID': student_id,
                'First Name': first_name,
                'Last Name': fake.last_name(),
                'Class': class_name,
                'Gender': gender,
                'Date of Birth': fake.date_between_dates(
                    date(birth_year, 1, 1), date(birth_year, 12, 31)
                ).isoformat(),
                'Parent Phone': f"+2332{rng.randint(0, 99999999):08d}",
            })
            counter += 1

    df = pd.DataFrame(students_data)
    df = df.sample(frac=1, random_state=seed).reset_index(drop=True)
    df.to_excel(output_file, index=False, engine='openpyxl')

    print(f"Bulk test data created: '{output_file}'")
    print(f"Total students: {len(df)}")
    print(f"Rows without Student ID: {int(df['Student ID'].isna().sum())}")
    print(f"Gender distribution: {df['Gender'].value_counts().to_dict()}")

    return output_file, df


if __name__ == "__main__":
    create_bulk_test_data()
