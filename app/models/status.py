"""
Revision status bitmask.

The integer value is persisted in the `status` column of every revision
table, so the bit assignment below must never change:

    bit 0  APPROVED
    bit 1  ALPHA
    bit 2  BETA
    bit 3  RC
    bit 4  INVISIBLE
    bit 5  DFSG
    bit 6  FEATURED
    bit 7  LATEST
    bit 8  TEX_NOT_POWER_OF_2  (set by the upload checker, never by users)
"""

import enum


class RevisionStatus(enum.IntFlag):
    NONE = 0
    APPROVED = 1 << 0
    ALPHA = 1 << 1
    BETA = 1 << 2
    RC = 1 << 3
    INVISIBLE = 1 << 4
    DFSG = 1 << 5
    FEATURED = 1 << 6
    LATEST = 1 << 7
    TEX_NOT_POWER_OF_2 = 1 << 8


# Flags any uploader may toggle on their own revisions
USER_FLAGS = RevisionStatus.ALPHA | RevisionStatus.BETA | RevisionStatus.RC

# Flags reserved to holders of the edit_addons permission
MODERATOR_FLAGS = RevisionStatus.APPROVED | RevisionStatus.INVISIBLE | RevisionStatus.DFSG | RevisionStatus.FEATURED

# Flags an uploaded archive may carry; the rest are moderation state
UPLOAD_FLAGS = USER_FLAGS | RevisionStatus.TEX_NOT_POWER_OF_2

# Form token name -> flag
FLAG_TOKENS = {
    "approved": RevisionStatus.APPROVED,
    "invisible": RevisionStatus.INVISIBLE,
    "alpha": RevisionStatus.ALPHA,
    "beta": RevisionStatus.BETA,
    "rc": RevisionStatus.RC,
    "dfsg": RevisionStatus.DFSG,
    "featured": RevisionStatus.FEATURED,
}


def as_status(value):
    return RevisionStatus(int(value or 0))


def upload_status(value):
    """Status word of a new revision: stage flags and the texture bit only"""
    return int(as_status(value) & UPLOAD_FLAGS)


def is_approved(status):
    return bool(as_status(status) & RevisionStatus.APPROVED)


def is_alpha(status):
    return bool(as_status(status) & RevisionStatus.ALPHA)


def is_beta(status):
    return bool(as_status(status) & RevisionStatus.BETA)


def is_release_candidate(status):
    return bool(as_status(status) & RevisionStatus.RC)


def is_invisible(status):
    return bool(as_status(status) & RevisionStatus.INVISIBLE)


def is_dfsg_compliant(status):
    return bool(as_status(status) & RevisionStatus.DFSG)


def is_featured(status):
    return bool(as_status(status) & RevisionStatus.FEATURED)


def is_latest(status):
    return bool(as_status(status) & RevisionStatus.LATEST)


def is_texture_power_of_two(status):
    return not (as_status(status) & RevisionStatus.TEX_NOT_POWER_OF_2)
