import logging

from fastapi import APIRouter, Depends, File, Request, UploadFile

from courseportal.core.errors import InternalError, ValidationError
from courseportal.services.storage import LocalFileStorage

router = APIRouter(tags=['uploads'])

logger = logging.getLogger(__name__)


def get_storage(request: Request) -> LocalFileStorage:
    return request.app.state.storage


@router.post('/upload')
def upload_file(
    file: UploadFile | None = File(None),
    storage: LocalFileStorage = Depends(get_storage),
):
    if file is None or not file.filename:
        raise ValidationError('No file uploaded')

    try:
        stored = storage.store(file.file, file.filename, file.content_type)
    except OSError as exc:
        logger.exception('Could not store upload %s', file.filename)
        raise InternalError('Could not store the uploaded file.') from exc
    finally:
        file.file.close()

    logger.info('Stored upload %s as %s (%d bytes)', stored.original_name, stored.path, stored.size)
    return {'message': 'File uploaded', 'file': stored}
