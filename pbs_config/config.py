# pbs_config/config.py
"""
Static constants and package lists for the OpenPBS installer.

This module defines script metadata, default paths, the OpenPBS source
locations and the per-distribution package lists used by the dependency
installer.
"""

from pathlib import Path
from typing import List

# --- Script metadata ---
SCRIPT_NAME: str = "OpenPBS installation script"
SCRIPT_VERSION: str = "1.0.0"

# --- Default Global Variable Values ---
PBS_VERSION_DEFAULT: str = "master"
PBS_PREFIX_DEFAULT: Path = Path("/opt/pbs")
PBS_HOME_DEFAULT: Path = Path("/var/spool/pbs")
DEFAULT_CLUSTER_NAME: str = "pbs-cluster"
PBS_SERVICE_NAME: str = "pbs"

# --- Persisted state locations ---
PBS_CONF_PATH: Path = Path("/etc/pbs.conf")
PROFILE_SCRIPT_PATH: Path = Path("/etc/profile.d/pbs.sh")
OS_RELEASE_PATH: Path = Path("/etc/os-release")
VERSION_MARKER_NAME: str = ".pbs_installer_version"

# --- OpenPBS source archives ---
OPENPBS_ARCHIVE_BASE_URL: str = "https://github.com/openpbs/openpbs/archive"
OPENPBS_BRANCH_ARCHIVE: str = "{base}/refs/heads/{version}.tar.gz"
OPENPBS_TAG_ARCHIVE: str = "{base}/refs/tags/v{version}.tar.gz"

# Binaries that must carry the setuid bit for rcp and iff authentication.
SETUID_BINARIES: List[str] = ["sbin/pbs_iff", "sbin/pbs_rcp"]

# --- Accounting database ---
PBS_DATASTORE_NAME: str = "pbs_datastore"
PBS_DATABASE_ROLE: str = "pbs"
DATABASE_SERVICE_NAME: str = "postgresql"
RHEL_POSTGRES_DATA_DIR: Path = Path("/var/lib/pgsql/data")

# --- Default queue ---
DEFAULT_QUEUE_NAME: str = "workq"
DEFAULT_QUEUE_WALLTIME: str = "24:00:00"

# --- Package Lists (Debian family, apt) ---
UBUNTU_BUILD_PACKAGES: List[str] = [
    "gcc",
    "make",
    "libtool",
    "autoconf",
    "automake",
    "g++",
    "libhwloc-dev",
    "libx11-dev",
    "libxt-dev",
    "libedit-dev",
    "libical-dev",
    "ncurses-dev",
    "perl",
    "python3-dev",
    "tcl-dev",
    "tk-dev",
    "swig",
    "libexpat-dev",
    "libssl-dev",
    "libxext-dev",
    "libxft-dev",
    "libcjson-dev",
    "pkg-config",
    "git",
    "wget",
    "build-essential",
]

UBUNTU_RUNTIME_PACKAGES: List[str] = [
    "expat",
    "libedit2",
    "python3",
    "sendmail-bin",
    "tcl",
    "tk",
    "libical3",
    "hwloc-nox",
    "libcjson1",
]

UBUNTU_DATABASE_DEV_PACKAGES: List[str] = ["postgresql-server-dev-all"]

UBUNTU_DATABASE_SERVER_PACKAGES: List[str] = [
    "postgresql",
    "postgresql-contrib",
]

# --- Package Lists (RHEL family, dnf) ---
RHEL_REPOSITORY_PACKAGES: List[str] = ["epel-release"]

# Tried in order; the first one that exists on the host is enabled.
RHEL_EXTRA_REPOSITORIES: List[str] = ["powertools", "PowerTools", "crb"]

RHEL_BUILD_GROUP: str = "Development Tools"

RHEL_BUILD_PACKAGES: List[str] = [
    "gcc",
    "make",
    "libtool",
    "autoconf",
    "automake",
    "hwloc-devel",
    "libX11-devel",
    "libXt-devel",
    "libedit-devel",
    "libical-devel",
    "ncurses-devel",
    "perl",
    "python3-devel",
    "tcl-devel",
    "tk-devel",
    "swig",
    "expat-devel",
    "openssl-devel",
    "libXext-devel",
    "libXft-devel",
    "libcjson-devel",
    "git",
    "wget",
]

RHEL_RUNTIME_PACKAGES: List[str] = [
    "expat",
    "libedit",
    "python3",
    "sendmail",
    "tcl",
    "tk",
    "libical",
    "hwloc",
]

RHEL_DATABASE_DEV_PACKAGES: List[str] = ["postgresql-devel"]

RHEL_DATABASE_SERVER_PACKAGES: List[str] = [
    "postgresql-server",
    "postgresql-contrib",
]

# --- Smoke test job ---
TEST_JOB_SCRIPT: str = """\
#!/bin/bash
#PBS -N test_job
#PBS -l select=1:ncpus=1
#PBS -l walltime=00:01:00
#PBS -j oe

echo "Test job running on: $(hostname)"
echo "Job ID: $PBS_JOBID"
echo "Date: $(date)"
"""
