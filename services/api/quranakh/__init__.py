"""QuranAkh annotation backend: highlights, notes and pen annotations."""
