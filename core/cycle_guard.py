"""
Cycle detection for recursive listing.

The guard holds the (device, inode) identity of every directory currently
being expanded. A shadow stack mirrors the set in entry order so that leaving
a directory releases exactly the identity that was registered last.
"""

DirectoryIdentity = tuple[int, int]


class CycleGuard:
    """
    Set of directories being descended into, with LIFO release.

    Invariant: the set and the shadow stack always hold the same identities.
    """

    def __init__(self) -> None:
        self._active: set[DirectoryIdentity] = set()
        self._stack: list[DirectoryIdentity] = []

    def visit(self, device: int, inode: int) -> bool:
        """
        Register a directory about to be expanded.

        Args:
            device: st_dev of the directory.
            inode: st_ino of the directory.

        Returns:
            bool: True if the directory was registered; False if it is already
                being expanded (a cycle), in which case the guard is unchanged.
        """
        identity = (device, inode)
        if identity in self._active:
            return False
        self._active.add(identity)
        self._stack.append(identity)
        return True

    def leave(self) -> DirectoryIdentity:
        """
        Release the most recently registered directory.

        Returns:
            The identity that was released.

        Raises:
            RuntimeError: If nothing is registered, which means entry and exit
                were not correctly nested.
        """
        if not self._stack:
            raise RuntimeError("cycle guard released more directories than it holds")
        identity = self._stack.pop()
        self._active.remove(identity)
        return identity

    def __contains__(self, identity: object) -> bool:
        return identity in self._active

    def __len__(self) -> int:
        return len(self._stack)

    def is_empty(self) -> bool:
        return not self._stack
