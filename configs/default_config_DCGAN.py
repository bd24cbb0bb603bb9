"""
Default configuration for DCGAN training on CIFAR-10 frogs.
"""

# Model configuration
MODEL_CONFIG = {
    'image_size': 32,
    'in_channels': 3,
    'latent_dim': 32,
    'g_base_channels': 128,
    'g_conv_channels': 256,
    'd_hidden_channels': 128,
    'negative_slope': 0.2,
    'dropout': 0.4,
}

# Training configuration
TRAINING_CONFIG = {
    'num_iterations': 10000,
    'batch_size': 20,
    'd_learning_rate': 8e-4,
    'g_learning_rate': 4e-4,
    'optimizer_type': 'rmsprop', # 'rmsprop' or 'adam' or 'sgd'
    'scheduler_type': 'inverse_time', # 'inverse_time' or 'constant' or 'cosine'
    'lr_decay': 1e-8,
    'clip_value': 1.0,
    'save_every': 100,
    'seed': 42,
    'halt_on_nan': True,
}

# Loss configuration
LOSS_CONFIG = {
    'real_label': 1.0,
    'fake_label': 0.0,
    'label_noise': 0.5,
}

# Data configuration
DATA_CONFIG = {
    'dataset': 'cifar10', # 'cifar10' or 'mnist'
    'class_label': 6, # frog
    'normalize': False,
}

# Paths configuration
PATHS_CONFIG = {
    'checkpoint_dir': 'checkpoints',
    'log_dir': 'logs',
    'sample_dir': 'samples',
    'data_dir': 'data',
    'checkpoint_name': 'gan.pth',
    'experiment_name': 'frog_dcgan',
}

# Combine all configurations
DEFAULT_CONFIG = {
    **MODEL_CONFIG,
    **TRAINING_CONFIG,
    **LOSS_CONFIG,
    **DATA_CONFIG,
    **PATHS_CONFIG,
    'resume_from': None,
}
