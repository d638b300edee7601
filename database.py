"""
Database module for the attendance system
SQLite storage for students, training image references and attendance records
"""

import logging
import sqlite3
import time
from contextlib import contextmanager
from datetime import datetime
from pathlib import Path

from core.errors import ConflictError, NotFoundError, PersistenceError
from core.features import vector_to_blob
from logging_config import database_logger

logger = logging.getLogger(__name__)


def _day(value):
    return value.isoformat() if hasattr(value, 'isoformat') else str(value)


def _scope_clause(subject=None, timeslot=None, slot_type=None, alias='a'):
    """Build the optional subject/timeslot/slot-type filter for attendance queries."""
    clauses = []
    params = []
    for column, value in (('subject', subject), ('timeslot', timeslot), ('slot_type', slot_type)):
        if value is not None:
            clauses.append(f'{alias}.{column} = ?')
            params.append(value)
    return clauses, params


class DatabaseManager:
    def __init__(self, db_path="attendance_system.db", timeout=5.0, retries=1, retry_delay=0.05):
        self.db_path = str(db_path)
        self.timeout = timeout
        self.retries = max(0, int(retries))
        self.retry_delay = retry_delay
        if self.db_path != ':memory:':
            Path(self.db_path).parent.mkdir(parents=True, exist_ok=True)
        self.init_database()

    def get_connection(self):
        """Open a connection with named-column rows and foreign keys enabled"""
        conn = sqlite3.connect(self.db_path, timeout=self.timeout)
        conn.row_factory = sqlite3.Row
        conn.execute('PRAGMA foreign_keys = ON')
        return conn

    @contextmanager
    def transaction(self, immediate=False):
        """Yield a connection inside one transaction; commit on success, roll back on error"""
        conn = self.get_connection()
        try:
            if immediate:
                # Take the write lock before reading so deletes act on current state
                conn.execute('BEGIN IMMEDIATE')
            yield conn
            conn.commit()
        except BaseException:
            conn.rollback()
            raise
        finally:
            conn.close()

    def _run(self, operation, fn):
        """Run fn with the retry budget; storage failures become PersistenceError"""
        attempt = 0
        started = time.perf_counter()
        while True:
            try:
                result = fn()
                database_logger.log_query(operation, time.perf_counter() - started, attempts=attempt + 1)
                return result
            except sqlite3.IntegrityError:
                raise
            except sqlite3.OperationalError as exc:
                if attempt < self.retries:
                    attempt += 1
                    database_logger.log_retry(operation, str(exc))
                    time.sleep(self.retry_delay)
                    continue
                database_logger.log_error(operation, str(exc))
                raise PersistenceError(f"Storage unavailable during {operation}: {exc}") from exc
            except sqlite3.DatabaseError as exc:
                database_logger.log_error(operation, str(exc))
                raise PersistenceError(f"Storage error during {operation}: {exc}") from exc

    def init_database(self):
        """Create tables and indexes"""
        def create(conn):
            cursor = conn.cursor()

            cursor.execute('''
                CREATE TABLE IF NOT EXISTS students (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    roll_no VARCHAR(50) UNIQUE NOT NULL,
                    full_name VARCHAR(100) NOT NULL,
                    email VARCHAR(100) NOT NULL,
                    face_vector BLOB,
                    vector_length INTEGER,
                    registered_at TIMESTAMP NOT NULL,
                    updated_at TIMESTAMP
                )
            ''')

            # Opaque references handed out by the image store
            cursor.execute('''
                CREATE TABLE IF NOT EXISTS training_images (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    student_id INTEGER NOT NULL,
                    image_ref VARCHAR(255) NOT NULL,
                    position INTEGER NOT NULL,
                    FOREIGN KEY (student_id) REFERENCES students(id) ON DELETE CASCADE
                )
            ''')

            # One row per attendance unit; absence is never stored
            cursor.execute('''
                CREATE TABLE IF NOT EXISTS attendance (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    student_id INTEGER NOT NULL,
                    subject VARCHAR(150) NOT NULL,
                    timeslot VARCHAR(50) NOT NULL,
                    slot_type VARCHAR(20) NOT NULL,
                    calendar_day DATE NOT NULL,
                    status VARCHAR(20) NOT NULL DEFAULT 'Present' CHECK (status = 'Present'),
                    marked_at TIMESTAMP NOT NULL,
                    recognition_distance REAL NOT NULL CHECK (recognition_distance >= 0),
                    created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
                    UNIQUE (student_id, subject, timeslot, slot_type, calendar_day),
                    FOREIGN KEY (student_id) REFERENCES students(id) ON DELETE CASCADE
                )
            ''')

            cursor.execute('CREATE INDEX IF NOT EXISTS idx_attendance_day ON attendance(calendar_day)')
            cursor.execute(
                'CREATE INDEX IF NOT EXISTS idx_attendance_session '
                'ON attendance(subject, timeslot, calendar_day)'
            )
            cursor.execute('CREATE INDEX IF NOT EXISTS idx_training_images_student ON training_images(student_id)')

        def op():
            with self.transaction() as conn:
                create(conn)

        self._run('init_database', op)
        logger.info("Database initialized at %s", self.db_path)

    # === STUDENTS ===
    def add_student(self, roll_no, full_name, email, face_vector, image_refs, registered_at=None):
        """Insert a student and its image references in one transaction; returns the new id"""
        registered_at = registered_at or datetime.now()
        vector_blob = vector_to_blob(face_vector) if face_vector is not None else None
        vector_length = len(face_vector) if face_vector is not None else None

        def op():
            with self.transaction() as conn:
                cursor = conn.cursor()
                cursor.execute('''
                    INSERT INTO students (roll_no, full_name, email, face_vector, vector_length, registered_at)
                    VALUES (?, ?, ?, ?, ?, ?)
                ''', (roll_no, full_name, email, vector_blob, vector_length, registered_at.isoformat(sep=' ')))
                student_id = cursor.lastrowid
                cursor.executemany('''
                    INSERT INTO training_images (student_id, image_ref, position)
                    VALUES (?, ?, ?)
                ''', [(student_id, ref, idx) for idx, ref in enumerate(image_refs)])
                return student_id

        try:
            student_id = self._run('add_student', op)
        except sqlite3.IntegrityError as exc:
            raise ConflictError(f"Student with roll number {roll_no} already exists") from exc
        logger.info(f"Added student: {full_name} ({roll_no})")
        return student_id

    def get_student(self, student_id):
        def op():
            with self.transaction() as conn:
                row = conn.execute('SELECT * FROM students WHERE id = ?', (student_id,)).fetchone()
                return dict(row) if row else None

        return self._run('get_student', op)

    def get_student_by_roll(self, roll_no):
        def op():
            with self.transaction() as conn:
                row = conn.execute('SELECT * FROM students WHERE roll_no = ?', (roll_no,)).fetchone()
                return dict(row) if row else None

        return self._run('get_student_by_roll', op)

    def get_all_students(self):
        """All students ordered by roll number"""
        def op():
            with self.transaction() as conn:
                rows = conn.execute('SELECT * FROM students ORDER BY roll_no').fetchall()
                return [dict(r) for r in rows]

        return self._run('get_all_students', op)

    def count_students(self):
        def op():
            with self.transaction() as conn:
                return conn.execute('SELECT COUNT(*) FROM students').fetchone()[0]

        return self._run('count_students', op)

    def get_enrolled_vectors(self):
        """Students holding a face vector, ordered by roll number"""
        def op():
            with self.transaction() as conn:
                rows = conn.execute('''
                    SELECT id, roll_no, full_name, face_vector FROM students
                    WHERE face_vector IS NOT NULL
                    ORDER BY roll_no
                ''').fetchall()
                return [dict(r) for r in rows]

        return self._run('get_enrolled_vectors', op)

    def get_image_refs(self, student_id):
        def op():
            with self.transaction() as conn:
                rows = conn.execute('''
                    SELECT image_ref FROM training_images WHERE student_id = ? ORDER BY position
                ''', (student_id,)).fetchall()
                return [r['image_ref'] for r in rows]

        return self._run('get_image_refs', op)

    def update_student(self, student_id, **kwargs):
        """Update name/roll number/email; returns False when the student does not exist"""
        allowed_fields = {'full_name', 'roll_no', 'email'}
        updates = {k: v for k, v in kwargs.items() if k in allowed_fields and v is not None}
        if not updates:
            return self.get_student(student_id) is not None

        updates['updated_at'] = datetime.now().isoformat(sep=' ')
        set_clause = ', '.join([f"{k} = ?" for k in updates.keys()])

        def op():
            with self.transaction() as conn:
                cursor = conn.execute(
                    f'UPDATE students SET {set_clause} WHERE id = ?',
                    list(updates.values()) + [student_id]
                )
                return cursor.rowcount > 0

        try:
            return self._run('update_student', op)
        except sqlite3.IntegrityError as exc:
            raise ConflictError(
                f"Student with roll number {updates.get('roll_no')} already exists"
            ) from exc

    def delete_student(self, student_id):
        """Delete a student with its attendance and image rows.

        Returns the image references to remove from storage, or None when the
        student does not exist.
        """
        def op():
            with self.transaction(immediate=True) as conn:
                refs = [r['image_ref'] for r in conn.execute(
                    'SELECT image_ref FROM training_images WHERE student_id = ? ORDER BY position',
                    (student_id,)
                ).fetchall()]
                cursor = conn.execute('DELETE FROM students WHERE id = ?', (student_id,))
                if cursor.rowcount == 0:
                    return None
                return refs

        return self._run('delete_student', op)

    def delete_all_students(self):
        """Delete every student (cascading to attendance and image rows) atomically.

        Returns (students_deleted, attendance_deleted, image_refs).
        """
        def op():
            with self.transaction(immediate=True) as conn:
                refs = [r['image_ref'] for r in conn.execute(
                    'SELECT image_ref FROM training_images ORDER BY student_id, position'
                ).fetchall()]
                attendance_deleted = conn.execute('DELETE FROM attendance').rowcount
                students_deleted = conn.execute('DELETE FROM students').rowcount
                return students_deleted, attendance_deleted, refs

        return self._run('delete_all_students', op)

    # === ATTENDANCE ===
    def upsert_attendance(self, student_id, subject, timeslot, slot_type, calendar_day, marked_at, distance):
        """Insert or refresh the record of one attendance unit (last write wins)"""
        def op():
            with self.transaction() as conn:
                conn.execute('''
                    INSERT INTO attendance (
                        student_id, subject, timeslot, slot_type, calendar_day,
                        status, marked_at, recognition_distance
                    )
                    VALUES (?, ?, ?, ?, ?, 'Present', ?, ?)
                    ON CONFLICT (student_id, subject, timeslot, slot_type, calendar_day)
                    DO UPDATE SET
                        status = 'Present',
                        marked_at = excluded.marked_at,
                        recognition_distance = excluded.recognition_distance
                ''', (student_id, subject, timeslot, slot_type, _day(calendar_day),
                      marked_at.isoformat(sep=' '), distance))
                row = conn.execute('''
                    SELECT * FROM attendance
                    WHERE student_id = ? AND subject = ? AND timeslot = ?
                      AND slot_type = ? AND calendar_day = ?
                ''', (student_id, subject, timeslot, slot_type, _day(calendar_day))).fetchone()
                return dict(row)

        try:
            return self._run('upsert_attendance', op)
        except sqlite3.IntegrityError as exc:
            # The student was deleted after it was recognized
            raise NotFoundError(f"Student {student_id} not found") from exc

    def find_attendance(self, calendar_day, student_id=None, subject=None, timeslot=None, slot_type=None):
        """Attendance rows of a day, optionally narrowed to a student and/or session"""
        clauses, params = _scope_clause(subject, timeslot, slot_type)
        clauses.insert(0, 'a.calendar_day = ?')
        params.insert(0, _day(calendar_day))
        if student_id is not None:
            clauses.append('a.student_id = ?')
            params.append(student_id)

        def op():
            with self.transaction() as conn:
                rows = conn.execute(
                    f'SELECT a.* FROM attendance a WHERE {" AND ".join(clauses)} ORDER BY a.marked_at',
                    params
                ).fetchall()
                return [dict(r) for r in rows]

        return self._run('find_attendance', op)

    def count_all_attendance(self):
        def op():
            with self.transaction() as conn:
                return conn.execute('SELECT COUNT(*) FROM attendance').fetchone()[0]

        return self._run('count_all_attendance', op)

    def count_present(self, calendar_day, subject=None, timeslot=None, slot_type=None):
        """Distinct students with a Present record for the day and optional session"""
        clauses, params = _scope_clause(subject, timeslot, slot_type)
        clauses.insert(0, 'a.calendar_day = ?')
        params.insert(0, _day(calendar_day))

        def op():
            with self.transaction() as conn:
                return conn.execute(
                    f'''SELECT COUNT(DISTINCT a.student_id) FROM attendance a
                        WHERE a.status = 'Present' AND {" AND ".join(clauses)}''',
                    params
                ).fetchone()[0]

        return self._run('count_present', op)

    def delete_attendance_for_day(self, calendar_day):
        def op():
            with self.transaction() as conn:
                return conn.execute(
                    'DELETE FROM attendance WHERE calendar_day = ?', (_day(calendar_day),)
                ).rowcount

        return self._run('delete_attendance_for_day', op)

    def delete_all_attendance(self):
        def op():
            with self.transaction() as conn:
                return conn.execute('DELETE FROM attendance').rowcount

        return self._run('delete_all_attendance', op)
