import pytest

from paygate.services.storage import LocalProofStorage, ProofFile


def test_save_writes_under_directory(tmp_path):
    storage = LocalProofStorage(tmp_path)

    key = storage.save(ProofFile(filename="Slip.JPG", content=b"img"), "payment-proofs")

    assert key.startswith("payment-proofs/")
    assert key.endswith(".jpg")
    assert storage.path_for(key).read_bytes() == b"img"


def test_proof_file_properties():
    proof = ProofFile(filename="bank.transfer.PDF", content=b"12345")

    assert proof.size == 5
    assert proof.extension == "pdf"
    assert ProofFile(filename="noext", content=b"").extension == ""


def test_path_traversal_is_refused(tmp_path):
    storage = LocalProofStorage(tmp_path)

    with pytest.raises(ValueError):
        storage.path_for("../outside.txt")
