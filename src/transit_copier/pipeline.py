import logging
from typing import Optional

from transit_copier.adapters.base import Reader, Writer
from transit_copier.adapters.gtfs_zip import GTFSZipReader
from transit_copier.adapters.parquet_writer import ParquetWriter
from transit_copier.copier.copier import Copier
from transit_copier.copier.options import CopierOptions
from transit_copier.copier.result import CopyResult
from transit_copier.runtime_utils.process_logger import ProcessLogger

logging.getLogger().setLevel("INFO")


def copy_feed(reader: Reader, writer: Writer, options: Optional[CopierOptions] = None) -> CopyResult:
    """
    copy a feed from reader to writer

    the reader and writer are opened for the copy and closed afterwards, the
    writer's destination is created before anything is written

    :return result of the copy
    """
    with reader, writer:
        writer.create()
        return Copier(reader, writer, options).copy()


def copy_gtfs_to_parquet(
    gtfs_path: str,
    export_dir: str,
    options: Optional[CopierOptions] = None,
) -> CopyResult:
    """
    copy a GTFS zip archive (or directory) into one parquet file per GTFS
    table in export_dir

    options are read from COPIER_* environment variables if not provided

    :param gtfs_path: path to GTFS zip archive or directory of .txt files
    :param export_dir: folder for parquet files
    """
    process_logger = ProcessLogger(
        "copy_gtfs_to_parquet",
        gtfs_path=gtfs_path,
        export_dir=export_dir,
    )
    process_logger.log_start()

    try:
        if options is None:
            options = CopierOptions.from_env()
        result = copy_feed(GTFSZipReader(gtfs_path), ParquetWriter(export_dir), options)
    except Exception as exception:
        process_logger.log_failure(exception)
        raise

    process_logger.add_metadata(
        entity_count=sum(result.entity_count.values()),
        error_count=result.error_count(),
        print_log=False,
    )
    process_logger.log_complete()

    return result
