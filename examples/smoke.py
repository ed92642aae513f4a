import polars as pl
from catcode import (
    Dataset,
    EncodingConfig,
    EncodingPipeline,
    FrequencyEncoder,
    MeanEncoder,
    setup_logging,
)


def main():
    setup_logging("DEBUG")

    train = pl.DataFrame({
        "cat": ["a", "b", "a", "c", "b", "a"],
        "x": [1.0, 2.5, 0.5, 3.2, 2.7, 4.1],
        "y": ["0", "1", "0", "1", "1", "0"],
    })
    test = pl.DataFrame({
        "cat": ["c", "c", "d", None],
        "x": [0.1, 0.2, 0.3, 0.4],
        "y": ["1", "0", "1", "0"],
    })
    vocab = {"cat": ["a", "b", "c", "d"], "y": ["0", "1"]}
    train_ds = Dataset(train, target="y", vocabularies=vocab, name="train")
    test_ds = Dataset(test, target="y", vocabularies=vocab, name="test")
    print("Input:\n", train_ds.frame)

    mean = EncodingPipeline(MeanEncoder())
    print("\nMeanEnc (train):\n", mean.transform(train_ds).frame)
    print("\nMeanEnc (test, reusing train codes; 'd' gets the global mean):\n", mean.transform(test_ds).frame)
    print("\nCode table:\n", mean.code_table.to_frame())

    freq = EncodingPipeline(FrequencyEncoder())
    freq.transform(train_ds)
    print("\nFreqEnc (test, train distribution):\n", freq.transform(test_ds).frame)

    config = EncodingConfig(encoder="frequency", use_test_distribution=True, attribute_indices="first")
    tracking = EncodingPipeline.from_config(config)
    tracking.transform(train_ds)
    print("\nFreqEnc (test, test distribution):\n", tracking.transform(test_ds).frame)

    print("\nPersisted state:\n", mean.to_dict())


if __name__ == "__main__":
    main()
