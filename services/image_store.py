"""
Image store
Filesystem storage for enrollment frames, addressed by opaque references
"""
import base64
import binascii
import logging
import os
from datetime import datetime
from pathlib import Path

from werkzeug.utils import secure_filename

from core.errors import ValidationError

logger = logging.getLogger(__name__)


def _generate_face_image_filename(roll_no, full_name, *, suffix=None, extension='jpg', timestamp=None):
    """Build a safe file name for a face image."""
    safe_base = secure_filename(f"{roll_no}_{full_name}".strip()) or secure_filename(roll_no) or 'student'
    timestamp = timestamp or datetime.now().strftime('%Y%m%d%H%M%S')
    suffix_part = f"_{suffix}" if suffix is not None else ''
    return f"{safe_base}_{timestamp}{suffix_part}.{extension}"


def decode_frame(image_data):
    """Decode a base64 frame, accepting a data URL prefix."""
    if not image_data or not isinstance(image_data, str):
        raise ValidationError('Missing image data')

    if ',' in image_data:
        image_data = image_data.split(',', 1)[1]
    try:
        img_bytes = base64.b64decode(image_data, validate=True)
    except (binascii.Error, ValueError) as exc:
        raise ValidationError('Invalid image: could not decode base64 data') from exc
    if not img_bytes:
        raise ValidationError('Invalid image: empty payload')
    return img_bytes


class ImageStore:
    """Writes enrollment frames under one directory; references are file names."""

    def __init__(self, images_dir):
        self.images_dir = Path(images_dir)
        self.images_dir.mkdir(parents=True, exist_ok=True)

    def path_for(self, reference):
        # References are bare file names; strip anything else
        return self.images_dir / os.path.basename(reference)

    def save_frames(self, roll_no, full_name, frames):
        """Persist every frame and return their references.

        Nothing is left behind when a frame cannot be decoded or written.
        """
        timestamp = datetime.now().strftime('%Y%m%d%H%M%S%f')
        saved = []
        try:
            for idx, frame in enumerate(frames):
                img_bytes = decode_frame(frame)
                filename = _generate_face_image_filename(
                    roll_no, full_name, suffix=f"{idx:02d}", timestamp=timestamp
                )
                with open(self.path_for(filename), 'wb') as fp:
                    fp.write(img_bytes)
                saved.append(filename)
        except (ValidationError, OSError):
            self.delete(saved)
            raise
        logger.debug("Stored %d frames for %s", len(saved), roll_no)
        return saved

    def exists(self, reference):
        return self.path_for(reference).exists()

    def delete(self, references):
        """Remove stored frames; missing files are skipped. Returns the number removed."""
        removed = 0
        for reference in references or []:
            if self.safe_delete_file(self.path_for(reference)):
                removed += 1
        return removed

    @staticmethod
    def safe_delete_file(path):
        """Try to delete a file without raising."""
        if not path:
            return False
        try:
            os.remove(path)
            return True
        except FileNotFoundError:
            return False
        except OSError as exc:
            logger.warning("Could not remove file %s: %s", path, exc)
            return False
