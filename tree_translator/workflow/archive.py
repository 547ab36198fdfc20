import logging
import os
import tempfile
import zipfile

logger = logging.getLogger(__name__)


def create_zip_from_directory(source_directory: str, output_zip_path: str) -> str:
    """Zip every file under ``source_directory`` into ``output_zip_path``.

    Entries keep their path relative to the source directory. The archive is
    built in a temporary file next to the target and moved into place only
    once it is complete, so readers never see a partial archive.
    """
    target_dir = os.path.dirname(os.path.abspath(output_zip_path))
    os.makedirs(target_dir, exist_ok=True)

    fd, temp_path = tempfile.mkstemp(prefix=".archive-", suffix=".zip.part", dir=target_dir)
    os.close(fd)
    # The output tree may contain the archive location itself
    skipped = {os.path.abspath(temp_path), os.path.abspath(output_zip_path)}

    try:
        with zipfile.ZipFile(temp_path, "w", compression=zipfile.ZIP_DEFLATED, compresslevel=9) as archive:
            for current, dirs, files in os.walk(source_directory):
                dirs.sort()
                for name in sorted(files):
                    absolute = os.path.join(current, name)
                    if os.path.islink(absolute) or not os.path.isfile(absolute):
                        continue
                    if os.path.abspath(absolute) in skipped:
                        continue
                    arcname = os.path.relpath(absolute, source_directory).replace(os.sep, "/")
                    archive.write(absolute, arcname)

        with zipfile.ZipFile(temp_path) as archive:
            broken = archive.testzip()
        if broken is not None:
            raise zipfile.BadZipFile(f"Archive member {broken} is corrupt")

        os.replace(temp_path, output_zip_path)
    except BaseException:
        if os.path.exists(temp_path):
            os.remove(temp_path)
        raise

    logger.info(f"Archived {source_directory} to {output_zip_path}")
    return output_zip_path
