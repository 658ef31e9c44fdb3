import logging
from pathlib import Path
from typing import Optional, Union

from hrevu.errors import UnresolvableInputError
from hrevu.git_service import GitService
from hrevu.models import CommitDiff, FileContent, WorkingTreeDiff

logger = logging.getLogger(__name__)

# The literal target that selects the working tree. A file of the same name
# can only be reviewed through another path to it, e.g. `./diff`.
WORKING_TREE_TARGET = "diff"


def resolve_subject(
    value: str,
    git_service: Optional[GitService] = None,
) -> Union[CommitDiff, FileContent, WorkingTreeDiff]:
    """Work out what a free-form review target refers to.

    First match wins:
    1. the literal `diff` selects the working tree,
    2. an existing filesystem path selects that file,
    3. a revision naming a commit selects that commit.

    Raises UnresolvableInputError when nothing matches.
    """
    if value == WORKING_TREE_TARGET:
        subject: Union[CommitDiff, FileContent, WorkingTreeDiff] = WorkingTreeDiff()
    elif value and Path(value).exists():
        subject = FileContent(path=value)
    else:
        git_service = git_service or GitService()
        if not value or git_service.resolve_commit(value) is None:
            raise UnresolvableInputError(value)
        subject = CommitDiff(commit=value)

    logger.info("Resolved %r to %s", value, subject.display_title())
    return subject
