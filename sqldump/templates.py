"""
Dump file header and footer for sqldump.
"""

from datetime import datetime

from .utils import LOG_TIMESTAMP_FORMAT, format_duration


def render_header(host: str, databases: list[str], start_time: datetime, version: str) -> str:
    """Banner and session pragmas written before the first database."""
    return (
        "-- sqldump\n"
        f"-- Server Host: {host}\n"
        f"-- Database(s): {', '.join(databases)}\n"
        f"-- Start Time: {start_time.strftime(LOG_TIMESTAMP_FORMAT)}\n"
        "-- ------------------------------------------------------\n"
        f"-- Server version:\t{version}\n"
        "\n"
        "/*!40101 SET @OLD_CHARACTER_SET_CLIENT=@@CHARACTER_SET_CLIENT */;\n"
        "/*!40101 SET @OLD_CHARACTER_SET_RESULTS=@@CHARACTER_SET_RESULTS */;\n"
        "/*!40101 SET @OLD_COLLATION_CONNECTION=@@COLLATION_CONNECTION */;\n"
        " SET NAMES utf8mb4 ;\n"
        "/*!40103 SET @OLD_TIME_ZONE=@@TIME_ZONE */;\n"
        "/*!40103 SET TIME_ZONE='+00:00' */;\n"
        "/*!40014 SET @OLD_UNIQUE_CHECKS=@@UNIQUE_CHECKS, UNIQUE_CHECKS=0 */;\n"
        "/*!40014 SET @OLD_FOREIGN_KEY_CHECKS=@@FOREIGN_KEY_CHECKS, FOREIGN_KEY_CHECKS=0 */;\n"
        "/*!40101 SET @OLD_SQL_MODE=@@SQL_MODE, SQL_MODE='NO_AUTO_VALUE_ON_ZERO' */;\n"
        "/*!40111 SET @OLD_SQL_NOTES=@@SQL_NOTES, SQL_NOTES=0 */;\n"
        "\n"
    )


def render_footer(start_time: datetime, end_time: datetime) -> str:
    """Session pragma restore and execution time, written after the last database."""
    elapsed = (end_time - start_time).total_seconds()
    return (
        "\n"
        "/*!40103 SET TIME_ZONE=@OLD_TIME_ZONE */;\n"
        "/*!40101 SET SQL_MODE=@OLD_SQL_MODE */;\n"
        "/*!40014 SET FOREIGN_KEY_CHECKS=@OLD_FOREIGN_KEY_CHECKS */;\n"
        "/*!40014 SET UNIQUE_CHECKS=@OLD_UNIQUE_CHECKS */;\n"
        "/*!40101 SET CHARACTER_SET_CLIENT=@OLD_CHARACTER_SET_CLIENT */;\n"
        "/*!40101 SET CHARACTER_SET_RESULTS=@OLD_CHARACTER_SET_RESULTS */;\n"
        "/*!40101 SET COLLATION_CONNECTION=@OLD_COLLATION_CONNECTION */;\n"
        "/*!40111 SET SQL_NOTES=@OLD_SQL_NOTES */;\n"
        "\n"
        "-- ----------------------------\n"
        "-- Dumped by sqldump\n"
        f"-- Execution Time: {format_duration(elapsed)}\n"
        "-- ----------------------------\n"
    )


def section_banner(title: str) -> str:
    return (
        "-- ----------------------------\n"
        f"-- {title}\n"
        "-- ----------------------------\n"
    )
